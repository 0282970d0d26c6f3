from enum import Enum


class RolesEnum(str, Enum):
    Master = "master"
    Admin = "admin"
    Instrutor = "instrutor"
    Usuario = "usuario"

    @classmethod
    def managers(cls) -> tuple[str, ...]:
        return (cls.Master.value, cls.Admin.value)
