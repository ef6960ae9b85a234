"""Tests for the project service."""

import uuid

import pytest

from flow_pipeline.core.errors import ProjectNotFoundError
from flow_pipeline.services.projects import ProjectService


async def test_create_and_get(db_session):
    service = ProjectService(db_session)
    project = await service.create_project("Acme Bakery", "en")

    fetched = await service.get_project(project.id)
    assert fetched.client_name == "Acme Bakery"
    assert fetched.language == "en"


async def test_language_defaults_to_pt(db_session):
    project = await ProjectService(db_session).create_project("Padaria Lisboa")
    assert project.language == "pt"


async def test_unsupported_language(db_session):
    with pytest.raises(ValueError):
        await ProjectService(db_session).create_project("Acme", "pt-BR")


async def test_update_metadata(db_session):
    service = ProjectService(db_session)
    project = await service.create_project("Acme")

    updated = await service.update_project(project.id, client_name="Acme Ltd", language="en")

    assert updated.client_name == "Acme Ltd"
    assert updated.language == "en"


async def test_unknown_project(db_session):
    with pytest.raises(ProjectNotFoundError):
        await ProjectService(db_session).get_project(uuid.uuid4())
