"""Tests for the append-only artifact store."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from flow_pipeline.core.errors import (
    ArtifactNotFoundError,
    InvalidArtifactError,
    ProjectNotFoundError,
)
from flow_pipeline.models.artifact import ArtifactFormat, ArtifactType
from flow_pipeline.models.project import Project
from flow_pipeline.services.artifact_store import ArtifactStore


@pytest.fixture
async def acme(db_session: AsyncSession) -> Project:
    project = Project(client_name="Acme", language="en")
    db_session.add(project)
    await db_session.flush()
    return project


async def _put_md(store: ArtifactStore, project_id: uuid.UUID, type: str, content: str):
    return await store.put_artifact(
        project_id, type, ArtifactFormat.MARKDOWN, title=content, content=content
    )


class TestPutArtifact:
    async def test_stores_json_payload(self, db_session, acme):
        store = ArtifactStore(db_session)
        artifact = await store.put_artifact(
            acme.id,
            ArtifactType.ONBOARDING_REPORT_JSON,
            ArtifactFormat.JSON,
            title="Onboarding",
            content_json={"company_name": "Acme"},
        )

        fetched = await store.get_artifact(artifact.id)
        assert fetched.type == "onboarding_report_json"
        assert fetched.format == "json"
        assert fetched.content_json == {"company_name": "Acme"}
        assert fetched.content is None

    async def test_unknown_project(self, db_session):
        with pytest.raises(ProjectNotFoundError):
            await ArtifactStore(db_session).put_artifact(
                uuid.uuid4(), ArtifactType.KB_FILE, ArtifactFormat.MARKDOWN, content="x"
            )

    @pytest.mark.parametrize(
        "format, payload",
        [
            (ArtifactFormat.JSON, {"content": "not json"}),
            (ArtifactFormat.MARKDOWN, {"content": ""}),
            (ArtifactFormat.MARKDOWN, {"content_json": {"a": 1}}),
            (ArtifactFormat.BINARY_REFERENCE, {}),
            ("pdf", {"content": "x"}),
        ],
    )
    async def test_payload_must_match_format(self, db_session, acme, format, payload):
        with pytest.raises(InvalidArtifactError):
            await ArtifactStore(db_session).put_artifact(
                acme.id, "custom_type", format, **payload
            )

    async def test_registered_json_shape_is_validated(self, db_session, acme):
        with pytest.raises(InvalidArtifactError, match="content_plan_json"):
            await ArtifactStore(db_session).put_artifact(
                acme.id,
                ArtifactType.CONTENT_PLAN_JSON,
                ArtifactFormat.JSON,
                content_json={"strategy_overview": "x", "posts": []},
            )

    async def test_empty_onboarding_report_rejected(self, db_session, acme):
        with pytest.raises(InvalidArtifactError):
            await ArtifactStore(db_session).put_artifact(
                acme.id,
                ArtifactType.ONBOARDING_REPORT_JSON,
                ArtifactFormat.JSON,
                content_json={},
            )

    async def test_unregistered_type_passes_through(self, db_session, acme):
        artifact = await ArtifactStore(db_session).put_artifact(
            acme.id, "brand_assets_json", ArtifactFormat.JSON, content_json=[1, 2, 3]
        )
        assert artifact.content_json == [1, 2, 3]


class TestReads:
    async def test_get_unknown_artifact(self, db_session):
        with pytest.raises(ArtifactNotFoundError):
            await ArtifactStore(db_session).get_artifact(uuid.uuid4())

    async def test_regeneration_appends_and_latest_wins(self, db_session, acme):
        store = ArtifactStore(db_session)
        first = await _put_md(store, acme.id, ArtifactType.RESEARCH_FOUNDATION_PACK_MD, "v1")
        second = await _put_md(store, acme.id, ArtifactType.RESEARCH_FOUNDATION_PACK_MD, "v2")

        history = await store.list_artifacts(acme.id, ArtifactType.RESEARCH_FOUNDATION_PACK_MD)
        assert [a.id for a in history] == [second.id, first.id]

        latest = await store.latest_artifact(acme.id, ArtifactType.RESEARCH_FOUNDATION_PACK_MD)
        assert latest.id == second.id
        # The older version is still readable
        assert (await store.get_artifact(first.id)).content == "v1"

    async def test_latest_of_missing_type_is_none(self, db_session, acme):
        store = ArtifactStore(db_session)
        assert await store.latest_artifact(acme.id, ArtifactType.QA_RESULTS_JSON) is None

    async def test_latest_of_types(self, db_session, acme):
        store = ArtifactStore(db_session)
        await _put_md(store, acme.id, ArtifactType.ONBOARDING_REPORT, "free text")
        structured = await store.put_artifact(
            acme.id,
            ArtifactType.ONBOARDING_REPORT_JSON,
            ArtifactFormat.JSON,
            content_json={"company_name": "Acme"},
        )

        latest = await store.latest_of_types(
            acme.id,
            (ArtifactType.ONBOARDING_REPORT_JSON, ArtifactType.ONBOARDING_REPORT),
        )
        assert latest.id == structured.id

    async def test_artifacts_are_scoped_to_their_project(self, db_session, acme):
        other = Project(client_name="Other")
        db_session.add(other)
        await db_session.flush()

        store = ArtifactStore(db_session)
        await _put_md(store, other.id, ArtifactType.KB_FILE, "theirs")

        assert await store.list_artifacts(acme.id) == []
        assert await store.latest_artifact(acme.id, ArtifactType.KB_FILE) is None
