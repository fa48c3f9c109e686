"""Tests for the EditSession state machine."""
import pytest

from pivoteditor.app.state import EditSession, SessionState, SwitchDecision
from pivoteditor.config import EditorConfig, UnsavedSwitchPolicy
from pivoteditor.model.document import Document
from pivoteditor.model.io import parse, serialize
from pivoteditor.model.pivot import PivotField, ValidationFailure


class Recorder:
    """Collects every emission of the session signals."""

    def __init__(self, session):
        self.states = []
        self.dirty = []
        self.documents = []
        self.selections = []
        self.rejections = []
        session.state_changed.connect(self.states.append)
        session.dirty_changed.connect(self.dirty.append)
        session.document_changed.connect(self.documents.append)
        session.selection_changed.connect(self.selections.append)
        session.rejected.connect(self.rejections.append)


def make_session(document, policy=UnsavedSwitchPolicy.DISCARD, enforce=False, prompt_handler=None):
    config = EditorConfig(on_unsaved_switch=policy, enforce_validation=enforce)
    return EditSession(document, config=config, prompt_handler=prompt_handler)


@pytest.fixture
def session(document):
    return make_session(document)


class TestSelect:
    def test_starts_on_first_pivot(self, session, document):
        assert session.state == SessionState.CLEAN
        assert session.selected_id == "1"
        assert session.buffer == document.get("1")

    def test_starts_on_requested_pivot(self, document):
        assert EditSession(document, pivot_id="2").selected_id == "2"

    def test_empty_document_starts_empty(self):
        session = EditSession(Document())

        assert session.state == SessionState.EMPTY
        assert session.buffer is None

    def test_buffer_is_a_deep_copy(self, session, document):
        buffer = session.buffer
        buffer["measures"].append({"field": "x"})

        assert session.buffer == document.get("1")
        assert session.document.get("1")["measures"] == [{"field": "expected_revenue"}]

    @pytest.mark.parametrize("pivot_id", [None, "404"])
    def test_unknown_or_none_id_goes_empty(self, session, pivot_id):
        assert session.select(pivot_id) is True
        assert session.state == SessionState.EMPTY
        assert session.selected_id is None

    def test_every_select_is_announced(self, session):
        recorder = Recorder(session)

        session.select("1")
        session.select("2")

        assert recorder.states == [SessionState.CLEAN, SessionState.CLEAN]
        assert recorder.selections == ["1", "2"]
        assert recorder.dirty == []

    def test_reselect_while_dirty_reloads(self, session, document):
        session.edit(name="changed")

        session.select("1")

        assert session.state == SessionState.CLEAN
        assert session.buffer == document.get("1")


class TestEdit:
    def test_edit_marks_dirty(self, session):
        recorder = Recorder(session)

        assert session.edit({PivotField.NAME: "Renamed"}) is True

        assert session.state == SessionState.DIRTY
        assert session.buffer["name"] == "Renamed"
        assert recorder.states == [SessionState.DIRTY]
        assert recorder.dirty == [True]

    def test_edit_is_a_shallow_merge(self, session, document):
        session.edit(rowGroupBys=["user_id", "stage_id"], sortedColumn={"order": "asc"})

        buffer = session.buffer
        assert buffer["rowGroupBys"] == ["user_id", "stage_id"]
        assert buffer["sortedColumn"] == {"order": "asc"}
        assert buffer["colGroupBys"] == document.get("1")["colGroupBys"]

    def test_edit_does_not_touch_committed_document(self, session, document):
        session.edit(name="Buffer only")

        assert session.document.get("1") == document.get("1")

    def test_edit_back_to_committed_value_is_clean(self, session):
        session.edit(name="tmp")
        session.edit(name="Leads by stage")

        assert session.state == SessionState.CLEAN

    def test_edit_when_empty_is_ignored(self):
        session = EditSession(Document())

        assert session.edit(name="x") is False
        assert session.state == SessionState.EMPTY

    @pytest.mark.parametrize("new_id", ["2", ""])
    def test_rename_to_duplicate_or_empty_is_rejected(self, session, new_id):
        recorder = Recorder(session)
        before = session.buffer

        assert session.edit(id=new_id) is False

        assert session.buffer == before
        assert session.state == SessionState.CLEAN
        assert len(recorder.rejections) == 1

    def test_rename_to_own_id_is_allowed(self, session):
        assert session.edit(id="1", name="same id") is True


class TestCommit:
    def test_commit_writes_buffer(self, session):
        session.edit(name="Saved")
        recorder = Recorder(session)

        assert session.commit() is True

        assert session.document.get("1")["name"] == "Saved"
        assert session.state == SessionState.CLEAN
        assert recorder.dirty == [False]
        assert len(recorder.documents) == 1

    def test_commit_rename_moves_the_pivot(self, session):
        session.edit(id="10")

        assert session.commit() is True

        assert session.document.ids() == ["10", "2"]
        assert session.selected_id == "10"
        assert session.document.get("10")["id"] == "10"
        assert session.state == SessionState.CLEAN

    def test_commit_from_clean_is_a_no_op(self, session, document):
        recorder = Recorder(session)

        assert session.commit() is True

        assert session.document == document
        assert recorder.documents == []

    def test_commit_when_empty_returns_false(self):
        assert EditSession(Document()).commit() is False

    def test_commit_refuses_id_taken_after_edit(self, session):
        session.edit(id="3")
        session.import_document(Document.from_dict({"pivots": {"a": {"name": "x"}}}))
        before = session.document
        recorder = Recorder(session)

        assert session.commit() is False

        assert session.document is before
        assert session.state == SessionState.DIRTY
        assert session.selected_id == "1"
        assert len(recorder.rejections) == 1
        assert recorder.states == []

    def test_commit_refuses_pivot_without_id(self):
        session = EditSession(Document.from_dict({"pivots": {"1": {"name": "no id"}}}))
        session.edit(name="still no id")

        assert session.commit() is False
        assert session.document.get("1") == {"name": "no id"}

    def test_rename_never_duplicates_ids(self, session):
        session.edit(id="2")
        session.commit()

        assert session.document.ids() == ["1", "2"]
        assert session.document.get("1")["id"] == "1"


class TestDiscard:
    def test_discard_restores_committed_value(self, session, document):
        session.edit(name="oops", measures=[])
        recorder = Recorder(session)

        session.discard()

        assert session.buffer == document.get("1")
        assert session.state == SessionState.CLEAN
        assert recorder.dirty == [False]

    def test_discard_is_idempotent(self, session):
        session.edit(name="oops")

        session.discard()
        once = session.buffer
        session.discard()

        assert session.buffer == once
        assert session.state == SessionState.CLEAN

    def test_discard_with_no_pivots_is_empty(self):
        session = EditSession(Document())

        session.discard()

        assert session.state == SessionState.EMPTY


class TestAddAndDelete:
    def test_add_pivot_uses_next_numeric_id(self, session):
        new_id = session.add_pivot()

        assert new_id == "3"
        assert session.selected_id == "3"
        assert session.state == SessionState.CLEAN
        assert session.buffer["name"] == "new pivot"
        assert session.buffer["model"] == "crm.lead"

    def test_add_pivot_uses_configured_defaults(self, document):
        config = EditorConfig(default_pivot_name="draft", default_model="sale.order")
        session = EditSession(document, config=config)

        session.add_pivot()

        assert session.buffer["name"] == "draft"
        assert session.buffer["model"] == "sale.order"

    def test_add_pivot_on_empty_document(self):
        session = EditSession(Document())

        assert session.add_pivot() == "1"
        assert session.state == SessionState.CLEAN

    def test_delete_selected_moves_to_first_remaining(self, session):
        session.select("2")
        session.edit(name="unsaved")

        assert session.delete_pivot() is True

        assert session.document.ids() == ["1"]
        assert session.selected_id == "1"
        assert session.state == SessionState.CLEAN

    def test_delete_last_pivot_goes_empty(self):
        session = EditSession(Document.from_dict({"pivots": {"1": {"id": "1"}}}))
        session.edit(name="unsaved")

        session.delete_pivot("1")

        assert session.state == SessionState.EMPTY
        assert session.selected_id is None
        assert not session.is_dirty

    def test_delete_other_pivot_keeps_buffer(self, session):
        session.edit(name="unsaved")

        session.delete_pivot("2")

        assert session.document.ids() == ["1"]
        assert session.state == SessionState.DIRTY
        assert session.buffer["name"] == "unsaved"

    def test_delete_unknown_pivot(self, session, document):
        assert session.delete_pivot("404") is False
        assert session.document == document


class TestUnsavedSwitchPolicy:
    def test_discard_policy_abandons_changes(self, session, document):
        session.edit(name="lost")

        assert session.select("2") is True

        assert session.selected_id == "2"
        assert session.document.get("1") == document.get("1")

    def test_block_policy_refuses_switch(self, document):
        session = make_session(document, UnsavedSwitchPolicy.BLOCK)
        session.edit(name="kept")
        recorder = Recorder(session)

        assert session.select("2") is False

        assert session.selected_id == "1"
        assert session.state == SessionState.DIRTY
        assert session.buffer["name"] == "kept"
        assert len(recorder.rejections) == 1

    def test_block_policy_refuses_add(self, document):
        session = make_session(document, UnsavedSwitchPolicy.BLOCK)
        session.edit(name="kept")

        assert session.add_pivot() is None
        assert len(session.document) == 2

    def test_prompt_save_commits_then_switches(self, document):
        asked = []

        def handler(current_id, target_id):
            asked.append((current_id, target_id))
            return SwitchDecision.SAVE

        session = make_session(document, UnsavedSwitchPolicy.PROMPT, prompt_handler=handler)
        session.edit(name="saved on switch")

        assert session.select("2") is True

        assert asked == [("1", "2")]
        assert session.document.get("1")["name"] == "saved on switch"
        assert session.selected_id == "2"

    def test_prompt_discard_switches(self, document):
        session = make_session(document, UnsavedSwitchPolicy.PROMPT, prompt_handler=lambda *_: SwitchDecision.DISCARD)
        session.edit(name="dropped")

        assert session.select("2") is True
        assert session.document.get("1")["name"] == "Leads by stage"

    def test_prompt_cancel_stays(self, document):
        session = make_session(document, UnsavedSwitchPolicy.PROMPT, prompt_handler=lambda *_: SwitchDecision.CANCEL)
        session.edit(name="kept")

        assert session.select("2") is False
        assert session.selected_id == "1"
        assert session.is_dirty

    def test_prompt_save_that_fails_stays(self, document):
        session = make_session(document, UnsavedSwitchPolicy.PROMPT, enforce=True,
                               prompt_handler=lambda *_: SwitchDecision.SAVE)
        session.edit(name="")

        assert session.select("2") is False
        assert session.selected_id == "1"

    def test_prompt_without_handler_blocks(self, document):
        session = make_session(document, UnsavedSwitchPolicy.PROMPT)
        session.edit(name="kept")

        assert session.select("2") is False

    def test_clean_switch_never_prompts(self, document):
        def handler(*_):
            raise AssertionError("should not be asked")

        session = make_session(document, UnsavedSwitchPolicy.PROMPT, prompt_handler=handler)

        assert session.select("2") is True


class TestValidationEnforcement:
    def test_commit_refuses_invalid_buffer(self, document):
        session = make_session(document, enforce=True)
        session.edit(measures="not a list")

        assert session.commit() is False
        assert session.is_dirty
        assert session.document.get("1")["measures"] == [{"field": "expected_revenue"}]

    def test_invalid_buffer_commits_when_not_enforced(self, session):
        session.edit(measures="not a list")

        assert session.commit() is True

    def test_load_rejects_invalid_document(self, document):
        session = make_session(document, enforce=True)
        invalid = Document.from_dict({"pivots": {"1": {"id": "1", "name": ""}}})

        with pytest.raises(ValidationFailure):
            session.load_document(invalid)

        assert session.document == document
        assert session.selected_id == "1"

    def test_export_validates(self, document):
        session = make_session(document, enforce=True)
        session.delete_pivot("2")
        session.import_document(Document.from_dict({"pivots": {"a": {"model": "m"}}}))

        with pytest.raises(ValidationFailure):
            session.export_document()

    def test_export_without_enforcement(self, session):
        assert session.export_document() is session.document


class TestDocumentLevel:
    def test_load_document_replaces_everything(self, session):
        session.edit(name="dropped")
        new_document = Document.from_dict({"pivots": {"7": {"id": "7", "name": "other"}}})

        session.load_document(new_document)

        assert session.document is new_document
        assert session.selected_id == "7"
        assert session.state == SessionState.CLEAN

    def test_load_empty_document(self, session):
        session.load_document(Document())

        assert session.state == SessionState.EMPTY

    def test_import_keeps_selection_and_buffer(self, session):
        session.edit(name="in progress")

        result = session.import_document(Document.from_dict({"pivots": {"x": {"id": "x", "name": "n"}}}))

        assert result.imported_ids == ["3"]
        assert session.document.get("3")["name"] == "imported"
        assert session.selected_id == "1"
        assert session.is_dirty
        assert session.buffer["name"] == "in progress"

    def test_empty_import_changes_nothing(self, session, document):
        recorder = Recorder(session)

        result = session.import_document(Document.from_dict({"pivots": {}}))

        assert result.count == 0
        assert session.document == document
        assert recorder.documents == []


class TestRoundTrip:
    EMPTY_SHEET = '{"version": 12, "sheets": [{"id": "s1"}], "pivots": {}, "globalFilters": []}'

    def test_empty_document_is_kept_as_given(self):
        document = parse(self.EMPTY_SHEET)

        session = EditSession(document)

        assert session.document is document
        assert serialize(session.export_document()) == serialize(document)

    def test_extra_fields_survive_add_on_empty_document(self):
        session = EditSession(parse(self.EMPTY_SHEET))

        session.add_pivot()

        exported = session.export_document().to_dict()
        assert list(exported) == ["version", "sheets", "pivots", "globalFilters"]
        assert exported["version"] == 12
        assert exported["sheets"] == [{"id": "s1"}]
        assert exported["pivots"]["1"]["name"] == "new pivot"

    def test_extra_fields_survive_deleting_every_pivot(self, document, sample_data):
        session = EditSession(document)

        session.delete_pivot("1")
        session.delete_pivot("2")

        assert session.state == SessionState.EMPTY
        exported = session.export_document().to_dict()
        assert exported == {"version": 12, "pivots": {}, "globalFilters": sample_data["globalFilters"]}

    def test_edit_commit_export_keeps_unknown_keys(self, document):
        session = EditSession(document)
        session.edit(name="Renamed")
        session.commit()

        exported = session.export_document().to_dict()
        assert exported["pivots"]["1"]["colGroupBys"] == ["create_date:month"]
        assert exported["pivots"]["1"]["name"] == "Renamed"
        assert exported["globalFilters"] == [{"id": "f1"}]


class TestIntegerIds:
    def test_integer_id_commits_as_string(self):
        session = EditSession(Document.from_dict({"pivots": {"1": {"id": 1, "name": "n"}}}))
        session.edit(name="changed")

        assert session.commit() is True

        assert session.document.get("1") == {"id": "1", "name": "changed"}
        assert session.buffer["id"] == "1"
        assert session.state == SessionState.CLEAN

    def test_integer_id_of_another_pivot_still_conflicts(self):
        session = EditSession(Document.from_dict({"pivots": {"1": {"id": 2}, "2": {"id": "2"}}}))
        session.edit(name="changed")

        assert session.commit() is False
        assert session.is_dirty


class TestCommitNotifications:
    def test_selection_is_current_when_document_changes(self, session):
        seen = []
        session.document_changed.connect(
            lambda document: seen.append((session.selected_id, session.selected_id in document))
        )
        session.edit(id="10")

        session.commit()

        assert seen == [("10", True)]

    def test_rename_refreshes_buffer_listeners(self, session):
        buffers = []
        session.edit(id="10")
        session.buffer_changed.connect(buffers.append)

        session.commit()

        assert buffers[-1]["id"] == "10"
