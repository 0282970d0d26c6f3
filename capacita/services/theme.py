"""Company color palettes rendered as CSS custom properties."""

from __future__ import annotations

import colorsys
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from capacita.models.empresas import Empresas
from capacita.models.perfis import Perfis

LOGGER = logging.getLogger(__name__)

ALL_COMPANIES = "todas"


@dataclass(frozen=True)
class Palette:
    id: str
    name: str
    primary: str
    primary_foreground: str
    accent: str
    sidebar_background: str
    sidebar_primary: str


def _palette(palette_id: str, name: str, hue: int, sat: int, light: int) -> Palette:
    primary = f"{hue} {sat}% {light}%"
    return Palette(
        id=palette_id,
        name=name,
        primary=primary,
        primary_foreground="0 0% 100%",
        accent=f"{hue} {sat}% 95%",
        sidebar_background=f"{hue} 30% 12%",
        sidebar_primary=primary,
    )


COLOR_PALETTES: Dict[str, Palette] = {
    p.id: p
    for p in (
        _palette("purple", "Roxo", 262, 83, 58),
        _palette("blue", "Azul", 217, 91, 60),
        _palette("green", "Verde", 142, 76, 36),
        _palette("orange", "Laranja", 25, 95, 53),
        _palette("red", "Vermelho", 0, 84, 60),
        _palette("pink", "Rosa", 330, 81, 60),
        _palette("cyan", "Ciano", 187, 85, 43),
        _palette("amber", "Âmbar", 38, 92, 50),
        _palette("indigo", "Índigo", 243, 75, 59),
        _palette("teal", "Teal", 167, 76, 42),
        _palette("slate", "Cinza", 215, 20, 40),
        _palette("emerald", "Esmeralda", 160, 84, 39),
    )
}

DEFAULT_PALETTE = COLOR_PALETTES["purple"]


def resolve_palette(palette_id: Optional[str]) -> Palette:
    """Unknown or empty ids fall back to the default palette."""

    if not palette_id:
        return DEFAULT_PALETTE
    return COLOR_PALETTES.get(palette_id.strip().lower(), DEFAULT_PALETTE)


def palette_variables(palette: Palette) -> Dict[str, str]:
    return {
        "--primary": palette.primary,
        "--primary-foreground": palette.primary_foreground,
        "--accent": palette.accent,
        "--ring": palette.primary,
        "--accent-foreground": palette.primary,
        "--sidebar-background": palette.sidebar_background,
        "--sidebar-primary": palette.sidebar_primary,
        "--gradient-primary": (
            f"linear-gradient(135deg, hsl({palette.primary}) 0%, "
            f"hsl({palette.primary} / 0.8) 100%)"
        ),
        "--shadow-primary": f"0 10px 30px -10px hsl({palette.primary} / 0.3)",
    }


class StyleRoot:
    """Stand-in for the document root style: an ordered property map."""

    def __init__(self) -> None:
        self.properties: Dict[str, str] = {}

    def set_property(self, name: str, value: str) -> None:
        self.properties[name] = value

    def to_css(self, selector: str = ":root") -> str:
        body = "".join(f"  {k}: {v};\n" for k, v in self.properties.items())
        return f"{selector} {{\n{body}}}\n"


class ThemeApplier:
    def __init__(self, root: Optional[StyleRoot] = None) -> None:
        self.root = root or StyleRoot()
        self.palette: Optional[Palette] = None

    def apply(self, palette: Palette) -> None:
        for name, value in palette_variables(palette).items():
            self.root.set_property(name, value)
        self.palette = palette if palette is not DEFAULT_PALETTE else None

    def apply_id(self, palette_id: Optional[str]) -> Palette:
        palette = resolve_palette(palette_id)
        self.apply(palette)
        return palette

    def reset(self) -> None:
        self.apply(DEFAULT_PALETTE)


def hsl_to_hex(triplet: str) -> str:
    """``"262 83% 58%"`` -> ``"#7c3aed"``-style hex."""

    hue, sat, light = triplet.replace("%", "").split()
    r, g, b = colorsys.hls_to_rgb(
        float(hue) / 360.0, float(light) / 100.0, float(sat) / 100.0
    )
    return "#{:02x}{:02x}{:02x}".format(
        round(r * 255), round(g * 255), round(b * 255)
    )


def company_palette(db: Session, empresa_id: Optional[str]) -> Palette:
    if not empresa_id:
        return DEFAULT_PALETTE
    try:
        tema = db.scalars(
            select(Empresas.tema_cor).where(Empresas.id == empresa_id)
        ).first()
    except SQLAlchemyError:
        LOGGER.exception("Erro ao buscar tema da empresa %s", empresa_id)
        return DEFAULT_PALETTE
    return resolve_palette(tema)


def theme_for_user(
    db: Session, user: Perfis, empresa_selecionada: Optional[str]
) -> ThemeApplier:
    """Master with a selected company sees its palette; everyone else, the default."""

    applier = ThemeApplier()
    if not user.is_master or not empresa_selecionada or (
        empresa_selecionada == ALL_COMPANIES
    ):
        applier.reset()
        return applier
    applier.apply(company_palette(db, empresa_selecionada))
    return applier
