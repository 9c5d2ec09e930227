"""
Tests unitarios del UpsertExecutor.
"""
from unittest.mock import Mock

import pytest

from conftest import FEATURES_DB, RELEASES_DB, text_response
from roadmap_sync.application.sync.field_policy import get_schema_set
from roadmap_sync.application.sync.report import UpsertOutcome
from roadmap_sync.application.sync.upsert_executor import UpsertExecutor
from roadmap_sync.domain.entities import EntityType, Feature, FieldChange, IdentityMap, Release
from roadmap_sync.infrastructure.external.notion import properties as props
from roadmap_sync.infrastructure.external.notion.client import NotionClient, NotionCredentials
from roadmap_sync.shared.utils.audit_sink import InMemoryAuditSink


@pytest.fixture
def identity():
    return IdentityMap()


@pytest.fixture
def audit():
    return InMemoryAuditSink()


def _executor(fake_notion, identity, audit, dry_run=False):
    return UpsertExecutor(
        fake_notion,
        get_schema_set(),
        identity,
        releases_database_id=RELEASES_DB,
        features_database_id=FEATURES_DB,
        audit=audit,
        dry_run=dry_run,
    )


class TestCreate:
    def test_create_registers_page_in_identity_map(self, fake_notion, identity, audit):
        release = Release(id="rel-1", name="Q3", state="upcoming")
        result = _executor(fake_notion, identity, audit).upsert(EntityType.RELEASE, release)

        assert result.outcome is UpsertOutcome.CREATED
        assert identity.get(EntityType.RELEASE, "rel-1") == result.page_id
        (create,) = fake_notion.calls_of("create")
        assert create[1] == RELEASES_DB
        assert create[2]["Productboard ID"] == props.rich_text("rel-1")

    def test_feature_create_links_release_page(self, fake_notion, identity, audit):
        feature = Feature(id="feat-1", name="Login", release_ids=("rel-1",))
        result = _executor(fake_notion, identity, audit).upsert(EntityType.FEATURE, feature, "page-r")
        stored = fake_notion.pages[result.page_id]["properties"]
        assert props.read_first_relation(stored["Release"]) == "page-r"
        assert props.read_select(stored["Health Status"]) == "unknown"

    def test_create_failure_is_reported_not_raised(self, fake_notion, identity, audit, log_records):
        fake_notion.fail_on["create"].add("Broken")
        result = _executor(fake_notion, identity, audit).upsert(
            EntityType.FEATURE, Feature(id="feat-1", name="Broken")
        )
        assert result.outcome is UpsertOutcome.ERROR
        assert result.page_id is None
        assert identity.features == {}
        assert audit.entries[0].error
        assert any(level == "ERROR" and "Broken" in msg and "validation_error" in msg for level, msg in log_records)

    def test_create_audit_entry_has_payload_and_result(self, fake_notion, identity, audit):
        _executor(fake_notion, identity, audit).upsert(EntityType.RELEASE, Release(id="rel-1", name="Q3"))
        (entry,) = audit.by_operation("create", "release")
        assert entry.payload["parent"] == {"database_id": RELEASES_DB}
        assert entry.result["id"] == entry.page_id
        assert entry.result["url"].startswith("https://www.notion.so/")


class TestUpdate:
    def test_no_changes_means_no_call(self, fake_notion, identity, audit):
        result = _executor(fake_notion, identity, audit).upsert(
            EntityType.RELEASE, Release(id="rel-1", name="Q3"), None, "page-1", None
        )
        assert result.outcome is UpsertOutcome.UNCHANGED
        assert fake_notion.calls == []
        assert audit.entries == []

    def test_changes_send_full_field_set(self, fake_notion, identity, audit):
        page_id = fake_notion.add_page(RELEASES_DB, {"Name": props.title("Old")})
        release = Release(id="rel-1", name="Q3", state="completed")
        result = _executor(fake_notion, identity, audit).upsert(
            EntityType.RELEASE, release, None, page_id, {"name": FieldChange("Old", "Q3")}
        )
        assert result.outcome is UpsertOutcome.UPDATED
        (update,) = fake_notion.calls_of("update")
        assert set(update[2]) == {"Name", "Productboard ID", "State"}

    def test_update_failure_keeps_page_id(self, fake_notion, identity, audit):
        page_id = fake_notion.add_page(RELEASES_DB, {"Name": props.title("Old")})
        fake_notion.fail_on["update"].add(page_id)
        result = _executor(fake_notion, identity, audit).upsert(
            EntityType.RELEASE, Release(id="rel-1", name="Q3"), None, page_id, {"name": FieldChange("Old", "Q3")}
        )
        assert result.outcome is UpsertOutcome.ERROR
        assert result.page_id == page_id


class TestDryRun:
    def test_create_uses_placeholder_and_no_network(self, fake_notion, identity, audit):
        result = _executor(fake_notion, identity, audit, dry_run=True).upsert(
            EntityType.RELEASE, Release(id="rel-1", name="Q3")
        )
        assert result.outcome is UpsertOutcome.CREATED
        assert result.page_id == "dry-run:rel-1"
        assert identity.releases == {"rel-1": "dry-run:rel-1"}
        assert fake_notion.calls == []
        assert audit.entries[0].dry_run is True

    def test_update_is_only_audited(self, fake_notion, identity, audit):
        result = _executor(fake_notion, identity, audit, dry_run=True).upsert(
            EntityType.RELEASE, Release(id="rel-1", name="Q3"), None, "page-1", {"name": FieldChange("Old", "Q3")}
        )
        assert result.outcome is UpsertOutcome.UPDATED
        assert fake_notion.calls == []
        assert audit.by_operation("update", "release")[0].page_id == "page-1"


class TestMalformedResponses:
    """Respuestas 2xx con body no JSON desde el cliente Notion real."""

    @pytest.fixture
    def session(self):
        return Mock()

    @pytest.fixture
    def notion(self, session):
        return NotionClient(NotionCredentials(token="secret"), session=session, max_retries=0, sleep=Mock())

    def _executor(self, notion, identity, audit):
        return UpsertExecutor(
            notion,
            get_schema_set(),
            identity,
            releases_database_id=RELEASES_DB,
            features_database_id=FEATURES_DB,
            audit=audit,
        )

    def test_non_json_create_is_an_error_outcome(self, session, notion, identity, audit, log_records):
        session.request.return_value = text_response(200, "<html>gateway</html>")
        result = self._executor(notion, identity, audit).upsert(EntityType.RELEASE, Release(id="rel-1", name="Q3"))

        assert result.outcome is UpsertOutcome.ERROR
        assert identity.releases == {}
        assert "JSON" in audit.entries[0].error
        assert any(level == "ERROR" and "Q3" in msg for level, msg in log_records)

    def test_non_json_update_keeps_page_id(self, session, notion, identity, audit):
        session.request.return_value = text_response(200, "<html>gateway</html>")
        result = self._executor(notion, identity, audit).upsert(
            EntityType.RELEASE, Release(id="rel-1", name="Q3"), None, "page-1", {"name": FieldChange("Old", "Q3")}
        )
        assert result.outcome is UpsertOutcome.ERROR
        assert result.page_id == "page-1"
