from capacita.services.theme import (
    ALL_COMPANIES,
    COLOR_PALETTES,
    DEFAULT_PALETTE,
    ThemeApplier,
    hsl_to_hex,
    palette_variables,
    resolve_palette,
    theme_for_user,
)
from capacita.models.roles import RolesEnum


def test_twelve_palettes_with_purple_default():
    assert len(COLOR_PALETTES) == 12
    assert DEFAULT_PALETTE.id == "purple"


def test_unknown_palette_falls_back_to_default():
    assert resolve_palette(None) is DEFAULT_PALETTE
    assert resolve_palette("") is DEFAULT_PALETTE
    assert resolve_palette("chartreuse") is DEFAULT_PALETTE
    assert resolve_palette(" Blue ").id == "blue"


def test_apply_then_reset_restores_default_variables():
    applier = ThemeApplier()
    applier.reset()
    baseline = dict(applier.root.properties)

    applier.apply(COLOR_PALETTES["green"])
    assert applier.palette.id == "green"
    assert applier.root.properties["--primary"] == COLOR_PALETTES["green"].primary
    assert applier.root.properties != baseline

    applier.reset()
    assert applier.palette is None
    assert applier.root.properties == baseline


def test_variables_cover_gradient_and_shadow():
    variables = palette_variables(COLOR_PALETTES["blue"])
    assert variables["--gradient-primary"].startswith("linear-gradient(135deg")
    assert "/ 0.3" in variables["--shadow-primary"]
    assert variables["--ring"] == variables["--primary"]


def test_css_rendering():
    applier = ThemeApplier()
    applier.apply_id("red")
    css = applier.root.to_css()
    assert css.startswith(":root {")
    assert "--primary: 0 84% 60%;" in css


def test_hsl_to_hex():
    assert hsl_to_hex("0 0% 100%") == "#ffffff"
    assert hsl_to_hex("0 100% 50%") == "#ff0000"


def test_master_selected_company_uses_its_palette(db_session, make_empresa, make_perfil):
    empresa = make_empresa(tema_cor="orange")
    master = make_perfil(role=RolesEnum.Master)

    applier = theme_for_user(db_session, master, empresa.id)
    assert applier.palette.id == "orange"

    assert theme_for_user(db_session, master, ALL_COMPANIES).palette is None


def test_non_master_always_gets_default(db_session, make_empresa, make_perfil):
    empresa = make_empresa(tema_cor="orange")
    admin = make_perfil(empresa=empresa, role=RolesEnum.Admin)

    applier = theme_for_user(db_session, admin, empresa.id)
    assert applier.palette is None
    assert applier.root.properties["--primary"] == DEFAULT_PALETTE.primary
