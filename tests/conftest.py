"""
Pytest configuration and fixtures for capgate tests.

This module provides shared fixtures used across unit, integration,
and security tests.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from capgate.catalog import PermissionCatalog
from capgate.policy import AuthorizationGate
from capgate.schema import Principal


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def catalog() -> PermissionCatalog:
    """The built-in catalog."""
    return PermissionCatalog.default()


@pytest.fixture
def gate(catalog: PermissionCatalog) -> AuthorizationGate:
    """A gate over the built-in catalog."""
    return AuthorizationGate(catalog)


@pytest.fixture
def admin() -> Principal:
    """Admin principal with id 1."""
    return Principal(id=1, role="Admin")


@pytest.fixture
def staff() -> Principal:
    """Staff principal with id 3."""
    return Principal(id=3, role="Staff")


@pytest.fixture
def participante() -> Principal:
    """Participante principal with id 42."""
    return Principal(id=42, role="Participante")


@pytest.fixture
def sample_catalog_yaml() -> str:
    """Return a small, valid catalog YAML."""
    return """
version: "1.0"
roles:
  Admin:
    - "usuarios:*"
    - "roles:read"
  Participante:
    - "usuarios:read_self"
    - "foros:read"
"""


@pytest.fixture
def broken_catalog_yaml() -> str:
    """Return a catalog YAML with malformed permission entries."""
    return """
version: "1.0"
roles:
  Staff:
    - "usuarios:read"
    - "usuarios-read"
    - "foros:*:read"
  Participante:
    - "foros:read"
"""
