"""Built-in role catalog for the event platform (talleres, competencias, foros...)."""

from types import MappingProxyType
from typing import Mapping

DEFAULT_ROLE_PERMISSIONS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "Admin": (
        "usuarios:create", "usuarios:read", "usuarios:update", "usuarios:delete",
        "roles:read", "roles:create", "roles:update", "roles:delete",
        "talleres:*", "competencias:*",
        "inscripciones:*",
        "asistencia:read", "asistencia:create", "asistencia:update", "asistencia:delete",
        "diplomas:generate", "diplomas:read",
        "resultados:*",
        "auditoria:read",
        "foros:*",
    ),
    "Organizador": (
        "usuarios:read", "usuarios:update",
        "roles:read",
        "talleres:create", "talleres:update", "talleres:read",
        "competencias:create", "competencias:update", "competencias:read",
        "inscripciones:create", "inscripciones:read", "inscripciones:update", "inscripciones:delete",
        "asistencia:read",
        "diplomas:generate", "diplomas:read",
        "resultados:create", "resultados:update", "resultados:read",
        "foros:create", "foros:update", "foros:read", "foros:delete",
    ),
    "Staff": (
        "usuarios:read",
        "talleres:read", "competencias:read",
        "asistencia:create", "asistencia:update", "asistencia:read",
        "diplomas:generate", "diplomas:read",
        "resultados:read",
        "foros:read",
    ),
    "Participante": (
        "usuarios:read_self", "usuarios:update_self",
        "talleres:read", "competencias:read",
        "inscripciones:create_self", "inscripciones:delete_self", "inscripciones:read_self",
        "asistencia:read_self",
        "diplomas:read_self",
        "resultados:read",
        "foros:read",
    ),
})
