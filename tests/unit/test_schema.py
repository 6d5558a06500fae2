"""
Unit tests for Pydantic schema models.

Tests cover:
- Principal validation and claim parsing
- ResourceContext construction from request parts
- Decision factories, HTTP mapping and error bodies
- CatalogConfig loading
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from capgate.errors import AuthorizationDeniedError
from capgate.schema import (
    CatalogConfig,
    Combinator,
    Decision,
    DecisionReason,
    Principal,
    ResourceContext,
    coerce_identifier,
    load_catalog_config,
    load_catalog_config_from_string,
)


# =============================================================================
# Principal
# =============================================================================


class TestPrincipal:
    """Tests for Principal model."""

    def test_valid(self) -> None:
        """Valid principal."""
        principal = Principal(id=42, role="Participante")
        assert principal.id == 42
        assert principal.role == "Participante"

    def test_role_defaults_to_empty(self) -> None:
        """Role defaults to an empty string."""
        assert Principal(id=1).role == ""

    @pytest.mark.parametrize("bad_id", [0, -1])
    def test_id_must_be_positive(self, bad_id: int) -> None:
        """Ids must be positive."""
        with pytest.raises(ValidationError):
            Principal(id=bad_id, role="Admin")

    def test_extra_fields_rejected(self) -> None:
        """Unknown fields are rejected."""
        with pytest.raises(ValidationError):
            Principal(id=1, role="Admin", email="a@b.c")

    def test_frozen(self) -> None:
        """Principals are immutable."""
        principal = Principal(id=1, role="Staff")
        with pytest.raises(ValidationError):
            principal.role = "Admin"

    def test_from_claims_rol(self) -> None:
        """from_claims() reads the 'rol' claim."""
        assert Principal.from_claims({"id": 3, "rol": "Staff"}) == Principal(id=3, role="Staff")

    def test_from_claims_role(self) -> None:
        """from_claims() reads the 'role' claim."""
        assert Principal.from_claims({"id": 3, "role": "Staff"}).role == "Staff"

    def test_from_claims_null_role(self) -> None:
        """A null role becomes an empty string."""
        assert Principal.from_claims({"id": 3, "rol": None}).role == ""

    def test_from_claims_missing_id(self) -> None:
        """Claims without an id raise KeyError."""
        with pytest.raises(KeyError):
            Principal.from_claims({"rol": "Staff"})


# =============================================================================
# ResourceContext
# =============================================================================


class TestCoerceIdentifier:
    """Tests for identifier normalization."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, None),
            ("", None),
            (42, 42),
            ("42", 42),
            ("+7", 7),
            ("-3", -3),
            (" 42 ", " 42 "),
            ("4_2", "4_2"),
            ("٤٢", "٤٢"),
            ("-", "-"),
            ("abc", "abc"),
            (True, "True"),
        ],
    )
    def test_coercion(self, value: object, expected: object) -> None:
        """Only ints and plain ASCII digit strings become ints."""
        assert coerce_identifier(value) == expected


class TestResourceContext:
    """Tests for ResourceContext model."""

    def test_empty(self) -> None:
        """An empty context carries no ownership signal."""
        ctx = ResourceContext()
        assert ctx.path_id is None
        assert ctx.body_user_id is None
        assert ctx.is_profile_route is False

    def test_path_id_from_string(self) -> None:
        """A numeric path segment becomes an int."""
        assert ResourceContext.from_request_parts(path_id="42").path_id == 42

    def test_non_numeric_path_id_kept_as_string(self) -> None:
        """A non-numeric path segment stays a string."""
        assert ResourceContext.from_request_parts(path_id="abc").path_id == "abc"

    def test_body_int(self) -> None:
        """An integer id_usuario is kept as an int."""
        ctx = ResourceContext.from_request_parts(body={"id_usuario": 42})
        assert ctx.body_user_id == 42

    def test_body_string_stays_string(self) -> None:
        """A string id_usuario stays a string."""
        ctx = ResourceContext.from_request_parts(body={"id_usuario": "42"})
        assert ctx.body_user_id == "42"

    def test_body_zero_is_present(self) -> None:
        """id_usuario 0 counts as present."""
        ctx = ResourceContext.from_request_parts(body={"id_usuario": 0})
        assert ctx.body_user_id == 0

    def test_body_bool_is_not_an_id(self) -> None:
        """A boolean id_usuario is not treated as an integer."""
        ctx = ResourceContext.from_request_parts(body={"id_usuario": True})
        assert ctx.body_user_id == "True"

    def test_body_without_field(self) -> None:
        """A body without id_usuario carries no signal."""
        ctx = ResourceContext.from_request_parts(body={"nombre": "x"})
        assert ctx.body_user_id is None

    def test_non_mapping_body_ignored(self) -> None:
        """A non-object body is ignored."""
        ctx = ResourceContext.from_request_parts(body=[1, 2])  # type: ignore[arg-type]
        assert ctx.body_user_id is None

    @pytest.mark.parametrize(
        ("route", "expected"),
        [
            ("/usuarios/perfil", True),
            ("/perfil/editar", True),
            ("/usuarios/{id}", False),
            (None, False),
            ("", False),
        ],
    )
    def test_profile_route(self, route: str | None, expected: bool) -> None:
        """Routes containing /perfil are profile routes."""
        ctx = ResourceContext.from_request_parts(route_path=route)
        assert ctx.is_profile_route is expected

    def test_custom_profile_markers(self) -> None:
        """Profile markers can be configured."""
        ctx = ResourceContext.from_request_parts(route_path="/me", profile_markers=("/me",))
        assert ctx.is_profile_route is True


# =============================================================================
# Decision
# =============================================================================


class TestDecisionReason:
    """Tests for DecisionReason."""

    def test_allow_reasons(self) -> None:
        """Exactly three reasons are allow reasons."""
        allow = {r for r in DecisionReason if r.is_allow}
        assert allow == {
            DecisionReason.EXACT_MATCH,
            DecisionReason.WILDCARD_MATCH,
            DecisionReason.SELF_OWNED,
        }


class TestDecision:
    """Tests for Decision model."""

    def test_allow_factory(self) -> None:
        """allow() builds an allowed decision with no error body."""
        decision = Decision.allow(DecisionReason.EXACT_MATCH, "foros:read", grant="foros:read")
        assert decision.allowed is True
        assert decision.required == ("foros:read",)
        assert decision.status_code == 200
        assert decision.error_body() is None

    def test_allow_rejects_deny_reason(self) -> None:
        """allow() refuses a deny reason."""
        with pytest.raises(ValueError):
            Decision.allow(DecisionReason.NOT_OWNER, "foros:read")

    def test_deny_rejects_allow_reason(self) -> None:
        """deny() refuses an allow reason."""
        with pytest.raises(ValueError):
            Decision.deny(DecisionReason.EXACT_MATCH, "foros:read")

    @pytest.mark.parametrize(
        ("reason", "status", "label"),
        [
            (DecisionReason.UNAUTHENTICATED, 401, "No autorizado"),
            (DecisionReason.INVALID_ROLE, 403, "Acceso denegado"),
            (DecisionReason.MISSING_PERMISSION, 403, "Acceso denegado"),
            (DecisionReason.NOT_OWNER, 403, "Acceso denegado"),
            (DecisionReason.INTERNAL_ERROR, 500, "Error interno"),
        ],
    )
    def test_http_mapping(self, reason: DecisionReason, status: int, label: str) -> None:
        """Each deny reason maps to one status and error label."""
        decision = Decision.deny(reason, "foros:delete")
        assert decision.status_code == status
        body = decision.error_body()
        assert body["success"] is False
        assert body["error"] == label
        assert body["message"] == decision.message

    def test_messages(self) -> None:
        """Fixed messages for the non-permission denials."""
        assert (
            Decision.deny(DecisionReason.UNAUTHENTICATED).message
            == "Debe estar autenticado para acceder a este recurso"
        )
        assert (
            Decision.deny(DecisionReason.INVALID_ROLE).message
            == "Rol de usuario no válido o no definido"
        )
        assert (
            Decision.deny(DecisionReason.INTERNAL_ERROR).message
            == "Error interno del servidor durante la verificación de permisos"
        )

    def test_any_denial_lists_alternatives(self) -> None:
        """An ANY denial lists every alternative."""
        decision = Decision.deny(
            DecisionReason.MISSING_PERMISSION,
            "a:b",
            required=("a:b", "c:d"),
            combinator=Combinator.ANY,
        )
        assert decision.message == (
            "No tiene permisos para realizar esta acción. Se requiere uno de: a:b, c:d"
        )

    def test_within_keeps_outcome(self) -> None:
        """within() restates a single decision for a whole guard."""
        single = Decision.deny(DecisionReason.NOT_OWNER, "a:b_self", ownership_rule="path_id")
        whole = single.within(("a:b", "a:b_self"), Combinator.ANY)
        assert whole.reason is DecisionReason.NOT_OWNER
        assert whole.ownership_rule == "path_id"
        assert whole.required == ("a:b", "a:b_self")
        assert whole.combinator is Combinator.ANY

    def test_raise_for_denial(self) -> None:
        """raise_for_denial() raises with the decision attached."""
        denied = Decision.deny(DecisionReason.MISSING_PERMISSION, "a:b")
        with pytest.raises(AuthorizationDeniedError) as exc_info:
            denied.raise_for_denial()
        assert exc_info.value.decision is denied

    def test_raise_for_denial_returns_allowed(self) -> None:
        """raise_for_denial() returns an allowed decision unchanged."""
        allowed = Decision.allow(DecisionReason.WILDCARD_MATCH, "a:b", grant="a:*")
        assert allowed.raise_for_denial() is allowed

    def test_serialization(self) -> None:
        """Decisions round-trip through JSON mode."""
        decision = Decision.deny(DecisionReason.NOT_OWNER, "a:b_self", ownership_rule="path_id")
        data = decision.model_dump(mode="json")
        assert data["reason"] == "not_owner"
        assert data["combinator"] == "all"
        assert Decision.model_validate(data) == decision


# =============================================================================
# CatalogConfig
# =============================================================================


class TestCatalogConfig:
    """Tests for CatalogConfig loading."""

    def test_from_string(self, sample_catalog_yaml: str) -> None:
        """Load a config from a YAML string."""
        config = load_catalog_config_from_string(sample_catalog_yaml)
        assert config.version == "1.0"
        assert config.roles["Admin"] == ["usuarios:*", "roles:read"]

    def test_from_file(self, temp_dir: Path, sample_catalog_yaml: str) -> None:
        """Load a config from a YAML file."""
        path = temp_dir / "catalog.yaml"
        path.write_text(sample_catalog_yaml, encoding="utf-8")
        assert set(load_catalog_config(path).roles) == {"Admin", "Participante"}

    def test_malformed_entries_accepted(self, broken_catalog_yaml: str) -> None:
        """Entry format is not validated by the config model."""
        config = load_catalog_config_from_string(broken_catalog_yaml)
        assert "usuarios-read" in config.roles["Staff"]

    def test_blank_role_rejected(self) -> None:
        """Blank role names are rejected."""
        with pytest.raises(ValidationError):
            CatalogConfig(roles={"  ": ["a:b"]})

    def test_missing_file(self, temp_dir: Path) -> None:
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_catalog_config(temp_dir / "nope.yaml")
