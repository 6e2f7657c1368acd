"""ChatEngine tests with mocked DB layer.

Uses MockSessionRow / MockRepository from ``helpers.mock_repo`` to test
engine orchestration without a real database.  Acknowledgements come from
``FixedPhrasing("OK.")`` so messages are deterministic; assertions stay on
structural fields wherever possible.
"""

import pytest

from form2chat.engine import MSG_UNFINISHED, ChatEngine, load_state
from form2chat.errors import SessionSubmittedError
from form2chat.models.session import AskStep, DoneStep, ReviewStep, TurnRequest
from form2chat.models.state import EngineState, RecoverySnapshot, UploadMetadata
from form2chat.phrasing import FixedPhrasing
from form2chat.recovery import RecoverySigner
from form2chat.validator import MSG_UPLOAD

from helpers.mock_repo import MockSessionRow

CV = UploadMetadata(file_id="f1", original_name="cv.pdf", mime="application/pdf", size_bytes=2048)


async def _say(engine, db, text, session_id="s1", form_id="refs"):
    return await engine.answer(db, form_id=form_id, session_id=session_id, text=text)


async def _fill_refs(engine, db, session_id="s1"):
    """Answer every field of both references; returns the last step."""
    step = None
    for text in ("Ann Lee", "2", "Bo", "a"):
        step = await _say(engine, db, text, session_id=session_id)
    return step


# =====================================================================
# Start / ask
# =====================================================================


class TestStart:

    @pytest.mark.asyncio
    async def test_start_creates_session_at_first_field(self, engine, mock_db, mock_repo):
        step = await engine.start(mock_db, form_id="refs", session_id="s1")
        assert isinstance(step, AskStep)
        assert step.field_id == "name"
        assert (step.progress.done, step.progress.total) == (0, 4)
        assert "Reference 1 of 2" in step.message
        assert mock_repo.sessions["s1"].field_cursor == 0

    @pytest.mark.asyncio
    async def test_start_without_session_id_generates_one(self, engine, mock_db, mock_repo):
        step = await engine.start(mock_db, form_id="refs")
        assert step.session_id
        assert step.session_id in mock_repo.sessions

    @pytest.mark.asyncio
    async def test_start_is_read_only(self, engine, mock_db, mock_repo):
        await engine.start(mock_db, form_id="refs", session_id="s1")
        await _say(engine, mock_db, "Ann")
        calls = mock_repo.update_calls
        step = await engine.start(mock_db, form_id="refs", session_id="s1")
        assert step.field_id == "role"
        assert mock_repo.update_calls == calls

    @pytest.mark.asyncio
    async def test_unknown_form_raises_key_error(self, engine, mock_db):
        with pytest.raises(KeyError):
            await engine.start(mock_db, form_id="nope", session_id="s1")

    @pytest.mark.asyncio
    async def test_existing_row_form_is_authoritative(self, engine, mock_db):
        await engine.start(mock_db, form_id="refs", session_id="s1")
        step = await engine.start(mock_db, form_id="candidate", session_id="s1")
        assert step.field_id == "name"
        assert step.progress.total == 4

    @pytest.mark.asyncio
    async def test_choice_hint_lists_options(self, engine, mock_db):
        step = await _say(engine, mock_db, "Ann")
        assert step.input_hint.type == "choice"
        assert step.input_hint.options == ["A", "B"]
        assert "1. A" in step.message and "2. B" in step.message


# =====================================================================
# Answer
# =====================================================================


class TestAnswer:

    @pytest.mark.asyncio
    async def test_reference_scenario(self, engine, mock_db, mock_repo):
        """Ann → role (1/4); "2" → B, commit, next name (2/4); back → role (1/4)."""
        step = await _say(engine, mock_db, "Ann")
        assert (step.field_id, step.progress.done) == ("role", 1)

        step = await _say(engine, mock_db, "2")
        assert (step.field_id, step.progress.done) == ("name", 2)
        assert "Reference 2 of 2" in step.message
        assert mock_repo.sessions["s1"].state["committed"] == [{"name": "Ann", "role": "B"}]

        step = await engine.back(mock_db, form_id="refs", session_id="s1")
        assert (step.field_id, step.progress.done) == ("role", 1)
        row = mock_repo.sessions["s1"]
        assert row.state == {"committed": [], "draft": {"name": "Ann"}}
        assert row.field_cursor == 1

    @pytest.mark.asyncio
    async def test_all_fields_answered_reaches_review(self, engine, mock_db, mock_repo):
        step = await _fill_refs(engine, mock_db)
        assert isinstance(step, ReviewStep)
        assert step.records == [{"name": "Ann Lee", "role": "B"}, {"name": "Bo", "role": "A"}]
        assert step.field_order == [{"id": "name", "label": "Name"}, {"id": "role", "label": "Role"}]
        assert (step.progress.done, step.progress.total) == (4, 4)
        row = mock_repo.sessions["s1"]
        assert row.state["draft"] == {}
        assert len(row.state["committed"]) == 2

    @pytest.mark.asyncio
    async def test_review_message_is_not_decorated(self, engine, mock_db):
        step = await _fill_refs(engine, mock_db)
        assert not step.message.startswith("OK.")
        assert "Reference 1\n- Name: Ann Lee\n- Role: B" in step.message

    @pytest.mark.asyncio
    async def test_invalid_answer_reasks_without_mutation(self, engine, mock_db, mock_repo):
        await _say(engine, mock_db, "Ann")
        before = dict(mock_repo.sessions["s1"].state)
        calls = mock_repo.update_calls

        step = await _say(engine, mock_db, "3")
        assert step.field_id == "role"
        assert step.progress.done == 1
        assert "Please choose one of the options" in step.message
        assert not step.message.startswith("OK.")
        assert mock_repo.sessions["s1"].state == before
        assert mock_repo.update_calls == calls

    @pytest.mark.asyncio
    async def test_superscript_index_reasks_choice(self, engine, mock_db, mock_repo):
        await _say(engine, mock_db, "Ann")
        calls = mock_repo.update_calls

        step = await _say(engine, mock_db, "²")
        assert isinstance(step, AskStep)
        assert step.field_id == "role"
        assert "1. A, 2. B" in step.message
        assert mock_repo.update_calls == calls

    @pytest.mark.asyncio
    async def test_acknowledgement_personalised_with_first_name(self, engine, mock_db):
        step = await _say(engine, mock_db, "Ann Lee")
        assert step.message.startswith("OK. Ann.")

    @pytest.mark.asyncio
    async def test_acknowledgement_without_name_in_draft(self, engine, mock_db):
        await _say(engine, mock_db, "Ann Lee")
        step = await _say(engine, mock_db, "A")
        # New record, empty draft
        assert step.message.startswith("OK.\n")

    @pytest.mark.asyncio
    async def test_progress_non_decreasing_under_answers(self, engine, mock_db):
        seen = []
        for text in ("Ann", "x", "1", "", "Bo", "B"):
            step = await _say(engine, mock_db, text)
            seen.append(step.progress.done)
        assert seen == sorted(seen)

    @pytest.mark.asyncio
    async def test_free_text_in_review_rerenders_review(self, engine, mock_db, mock_repo):
        await _fill_refs(engine, mock_db)
        calls = mock_repo.update_calls
        step = await _say(engine, mock_db, "looks good")
        assert isinstance(step, ReviewStep)
        assert mock_repo.update_calls == calls


# =====================================================================
# Back / restart
# =====================================================================


class TestBackAndRestart:

    @pytest.mark.asyncio
    async def test_back_restores_prior_prompt(self, engine, mock_db, mock_repo):
        await _say(engine, mock_db, "Ann")
        await _say(engine, mock_db, "A")
        before = await engine.start(mock_db, form_id="refs", session_id="s1")
        before_state = dict(mock_repo.sessions["s1"].state)

        await _say(engine, mock_db, "Bo")
        after = await engine.back(mock_db, form_id="refs", session_id="s1")

        assert after.field_id == before.field_id
        assert after.progress == before.progress
        assert after.message == before.message
        assert mock_repo.sessions["s1"].state == before_state

    @pytest.mark.asyncio
    async def test_back_from_review_reopens_last_record(self, engine, mock_db):
        await _fill_refs(engine, mock_db)
        step = await engine.back(mock_db, form_id="refs", session_id="s1")
        assert isinstance(step, AskStep)
        assert step.field_id == "role"
        assert step.progress.done == 3

    @pytest.mark.asyncio
    async def test_back_at_initial_state_is_noop(self, engine, mock_db, mock_repo):
        step = await engine.back(mock_db, form_id="refs", session_id="s1")
        assert step.field_id == "name"
        assert step.progress.done == 0
        assert mock_repo.sessions["s1"].state == {"committed": [], "draft": {}}

    @pytest.mark.asyncio
    async def test_restart_from_anywhere(self, engine, mock_db, mock_repo):
        await _say(engine, mock_db, "Ann")
        await _say(engine, mock_db, "B")
        await _say(engine, mock_db, "Bo")
        step = await engine.restart(mock_db, form_id="refs", session_id="s1")
        assert step.field_id == "name"
        assert (step.progress.done, step.progress.total) == (0, 4)
        row = mock_repo.sessions["s1"]
        assert row.state == {"committed": [], "draft": {}}
        assert row.status == "in_progress"

    @pytest.mark.asyncio
    async def test_restart_from_review(self, engine, mock_db):
        await _fill_refs(engine, mock_db)
        step = await engine.restart(mock_db, form_id="refs", session_id="s1")
        assert isinstance(step, AskStep)
        assert step.progress.done == 0

    @pytest.mark.asyncio
    async def test_restart_refused_after_submit(self, engine, mock_db):
        await _fill_refs(engine, mock_db)
        await engine.submit(mock_db, form_id="refs", session_id="s1")
        with pytest.raises(SessionSubmittedError, match="already submitted"):
            await engine.restart(mock_db, form_id="refs", session_id="s1")


# =====================================================================
# Submit
# =====================================================================


class TestSubmit:

    @pytest.mark.asyncio
    async def test_submit_from_review(self, engine, mock_db, mock_repo):
        await _fill_refs(engine, mock_db)
        step = await engine.submit(mock_db, form_id="refs", session_id="s1")
        assert isinstance(step, DoneStep)
        assert step.records == [{"name": "Ann Lee", "role": "B"}, {"name": "Bo", "role": "A"}]
        assert step.message.startswith("Submitted.")
        row = mock_repo.sessions["s1"]
        assert row.status == "submitted"
        assert row.submitted_at is not None
        assert len(mock_repo.submissions) == 1
        assert mock_repo.submissions[0].state["committed"] == step.records

    @pytest.mark.asyncio
    async def test_submit_twice_is_idempotent(self, engine, mock_db, mock_repo):
        await _fill_refs(engine, mock_db)
        first = await engine.submit(mock_db, form_id="refs", session_id="s1")
        second = await engine.submit(mock_db, form_id="refs", session_id="s1")
        assert first == second
        assert len(mock_repo.submissions) == 1

    @pytest.mark.asyncio
    async def test_submitted_session_is_frozen(self, engine, mock_db, mock_repo):
        await _fill_refs(engine, mock_db)
        done = await engine.submit(mock_db, form_id="refs", session_id="s1")
        state = dict(mock_repo.sessions["s1"].state)
        assert await _say(engine, mock_db, "Carl") == done
        assert await engine.back(mock_db, form_id="refs", session_id="s1") == done
        assert await engine.start(mock_db, form_id="refs", session_id="s1") == done
        assert mock_repo.sessions["s1"].state == state

    @pytest.mark.asyncio
    async def test_submit_too_early_reasks(self, engine, mock_db, mock_repo):
        await _say(engine, mock_db, "Ann")
        step = await engine.submit(mock_db, form_id="refs", session_id="s1")
        assert isinstance(step, AskStep)
        assert step.field_id == "role"
        assert MSG_UNFINISHED in step.message
        assert mock_repo.submissions == []

    @pytest.mark.asyncio
    async def test_submit_auto_commits_satisfied_last_draft(self, engine, mock_db, mock_repo):
        await _say(engine, mock_db, "Ann")
        await _say(engine, mock_db, "A")
        await _say(engine, mock_db, "Bo")
        # role is optional, so the last draft already satisfies the form
        step = await engine.submit(mock_db, form_id="refs", session_id="s1")
        assert isinstance(step, DoneStep)
        assert step.records == [{"name": "Ann", "role": "A"}, {"name": "Bo"}]
        assert len(mock_repo.submissions) == 1

    @pytest.mark.asyncio
    async def test_existing_submission_not_duplicated(self, engine, mock_db, mock_repo):
        await _fill_refs(engine, mock_db)
        await engine.submit(mock_db, form_id="refs", session_id="s1")
        # Status lost, submission row kept
        mock_repo.sessions["s1"].status = "in_progress"
        step = await engine.submit(mock_db, form_id="refs", session_id="s1")
        assert isinstance(step, DoneStep)
        assert len(mock_repo.submissions) == 1


# =====================================================================
# File fields
# =====================================================================


class TestUpload:

    async def _to_cv(self, engine, db):
        await _say(engine, db, "Ann", form_id="candidate")
        return await _say(engine, db, "", form_id="candidate")

    @pytest.mark.asyncio
    async def test_file_field_hint(self, engine, mock_db):
        step = await self._to_cv(engine, mock_db)
        assert step.field_id == "cv"
        assert step.input_hint.type == "file"
        assert step.input_hint.accept == "application/pdf"
        assert "upload" in step.message.lower()

    @pytest.mark.asyncio
    async def test_text_for_file_field_rejected(self, engine, mock_db, mock_repo):
        await self._to_cv(engine, mock_db)
        step = await _say(engine, mock_db, "attached", form_id="candidate")
        assert step.field_id == "cv"
        assert MSG_UPLOAD in step.message
        assert mock_repo.sessions["s1"].field_cursor == 2

    @pytest.mark.asyncio
    async def test_upload_ack_advances(self, engine, mock_db, mock_repo):
        await self._to_cv(engine, mock_db)
        step = await engine.upload_ack(
            mock_db, form_id="candidate", session_id="s1", field_id="cv", metadata=CV,
        )
        assert isinstance(step, ReviewStep)
        assert step.records[0]["cv"] == {
            "file_id": "f1", "name": "cv.pdf", "mime": "application/pdf", "size_bytes": 2048,
        }
        assert "- CV: cv.pdf (application/pdf)" in step.message
        assert [u.file_id for u in mock_repo.uploads] == ["f1"]

    @pytest.mark.asyncio
    async def test_mismatched_upload_ignored(self, engine, mock_db, mock_repo):
        await self._to_cv(engine, mock_db)
        calls = mock_repo.update_calls
        step = await engine.upload_ack(
            mock_db, form_id="candidate", session_id="s1", field_id="photo", metadata=CV,
        )
        assert step.field_id == "cv"
        assert mock_repo.update_calls == calls
        assert mock_repo.uploads == []

    @pytest.mark.asyncio
    async def test_upload_on_text_field_ignored(self, engine, mock_db, mock_repo):
        step = await engine.upload_ack(
            mock_db, form_id="candidate", session_id="s1", field_id="cv", metadata=CV,
        )
        assert step.field_id == "name"
        assert mock_repo.uploads == []


# =====================================================================
# Storage loss and malformed state
# =====================================================================


class TestRecovery:

    def _snapshot(self, signer=None):
        signer = signer or RecoverySigner()
        return signer.sign(1, EngineState(draft={"name": "Ann"}))

    @pytest.mark.asyncio
    async def test_snapshot_rebuilds_missing_session(self, engine, mock_db, mock_repo):
        step = await engine.start(
            mock_db, form_id="refs", session_id="lost", recovery=self._snapshot(),
        )
        assert step.field_id == "role"
        assert mock_repo.sessions["lost"].state["draft"] == {"name": "Ann"}

    @pytest.mark.asyncio
    async def test_snapshot_never_overrides_existing_row(self, engine, mock_db, mock_repo):
        await engine.start(mock_db, form_id="refs", session_id="s1")
        step = await engine.start(
            mock_db, form_id="refs", session_id="s1", recovery=self._snapshot(),
        )
        assert step.field_id == "name"
        assert mock_repo.sessions["s1"].state["draft"] == {}

    @pytest.mark.asyncio
    async def test_unsigned_snapshot_ignored_with_secret(self, forms, mock_repo, mock_db):
        engine = ChatEngine(forms, phrasing=FixedPhrasing(), signer=RecoverySigner("k"))
        engine._repo = mock_repo
        step = await engine.start(
            mock_db, form_id="refs", session_id="lost", recovery=self._snapshot(),
        )
        assert step.field_id == "name"

    @pytest.mark.asyncio
    async def test_signed_snapshot_accepted_with_secret(self, forms, mock_repo, mock_db):
        signer = RecoverySigner("k")
        engine = ChatEngine(forms, phrasing=FixedPhrasing(), signer=signer)
        engine._repo = mock_repo
        first = await engine.start(mock_db, form_id="refs", session_id="a")
        assert first.recovery.signature
        step = await engine.start(
            mock_db, form_id="refs", session_id="lost", recovery=self._snapshot(signer),
        )
        assert step.field_id == "role"

    @pytest.mark.asyncio
    async def test_tampered_snapshot_ignored(self, forms, mock_repo, mock_db):
        signer = RecoverySigner("k")
        engine = ChatEngine(forms, phrasing=FixedPhrasing(), signer=signer)
        engine._repo = mock_repo
        snapshot = self._snapshot(signer)
        forged = RecoverySnapshot(
            field_cursor=0,
            state=EngineState(committed=[{"name": "X", "role": "A"}] * 2),
            signature=snapshot.signature,
        )
        step = await engine.start(mock_db, form_id="refs", session_id="lost", recovery=forged)
        assert isinstance(step, AskStep)
        assert step.progress.done == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["not json", {"committed": "oops"}, 42, None])
    async def test_malformed_state_degrades_to_empty(self, engine, mock_db, mock_repo, raw):
        mock_repo.sessions["s1"] = MockSessionRow(session_id="s1", form_id="refs", state=raw)
        step = await engine.start(mock_db, form_id="refs", session_id="s1")
        assert step.field_id == "name"
        assert step.progress.done == 0

    @pytest.mark.asyncio
    async def test_legacy_flat_state_is_draft(self, engine, mock_db, mock_repo):
        mock_repo.sessions["s1"] = MockSessionRow(
            session_id="s1", form_id="refs", field_cursor=1, state={"name": "Ann"},
        )
        step = await engine.start(mock_db, form_id="refs", session_id="s1")
        assert step.field_id == "role"

    def test_load_state_accepts_json_string(self):
        state = load_state('{"committed": [{"name": "Ann"}], "draft": {}}')
        assert state.committed == [{"name": "Ann"}]


# =====================================================================
# Turn protocol and session info
# =====================================================================


class TestTurnProtocol:

    @pytest.mark.asyncio
    async def test_commands_dispatch_case_insensitively(self, engine, mock_db):
        def turn(command):
            return TurnRequest(form_id="refs", session_id="s1", command=command)

        await engine.handle_turn(mock_db, turn("start"))
        step = await engine.handle_turn(mock_db, turn("Ann"))
        assert step.field_id == "role"
        step = await engine.handle_turn(mock_db, turn("  BACK "))
        assert step.field_id == "name"

    @pytest.mark.asyncio
    async def test_upload_payload_is_upload_ack(self, engine, mock_db):
        await _say(engine, mock_db, "Ann", form_id="candidate")
        await _say(engine, mock_db, "", form_id="candidate")
        request = TurnRequest.model_validate({
            "form_id": "candidate",
            "session_id": "s1",
            "command": "ignored",
            "upload": {
                "field_id": "cv", "file_id": "f1", "original_name": "cv.pdf",
                "mime": "application/pdf", "size_bytes": 10,
            },
        })
        step = await engine.handle_turn(mock_db, request)
        assert isinstance(step, ReviewStep)

    @pytest.mark.asyncio
    async def test_get_session(self, engine, mock_db):
        assert await engine.get_session(mock_db, "s1") is None
        await _say(engine, mock_db, "Ann")
        await _say(engine, mock_db, "B")
        info = await engine.get_session(mock_db, "s1")
        assert info.form_id == "refs"
        assert info.status == "in_progress"
        assert info.committed_count == 1
        assert info.field_cursor == 0
