from datetime import datetime, timedelta

import pytest
from ktree.errors import InvariantViolation, NotFound, ValidationError
from ktree.models import StudentNodeSubmission, StudentNodeWork
from ktree.services import hierarchy
from ktree.services.submissions import SubmissionService
from sqlalchemy import func, select

IMG_A = "http://storage/a.png"
IMG_B = "http://storage/b.png"


@pytest.mark.asyncio
async def test_draft_lifecycle(db_session, sample_tree, sample_student):
    service = SubmissionService(db_session)
    student_id, node_id = sample_student.id, sample_tree["linear"].id

    update = await service.save_draft(student_id, node_id, code_text="x = 1")
    assert update.draft.code_text == "x = 1"
    assert update.draft.code_image_url is None
    assert update.discarded_image_url is None

    # Image added; text kept
    update = await service.save_draft(student_id, node_id, code_image_url=IMG_A)
    assert update.draft.code_text == "x = 1"
    assert update.draft.code_image_url == IMG_A

    # Image replaced; the old one is reported for cleanup
    update = await service.save_draft(student_id, node_id, code_image_url=IMG_B)
    assert update.draft.code_image_url == IMG_B
    assert update.discarded_image_url == IMG_A

    update = await service.save_draft(student_id, node_id, remove_image=True)
    assert update.draft.code_image_url is None
    assert update.discarded_image_url == IMG_B

    # Clearing the last field deletes the draft
    update = await service.save_draft(student_id, node_id, code_text="   ")
    assert update.draft is None
    assert await service.get_draft(student_id, node_id) is None


@pytest.mark.asyncio
async def test_draft_needs_content(db_session, sample_tree, sample_student):
    service = SubmissionService(db_session)
    with pytest.raises(ValidationError):
        await service.save_draft(sample_student.id, sample_tree["linear"].id)


@pytest.mark.asyncio
async def test_root_takes_no_work(db_session, sample_tree, sample_student):
    service = SubmissionService(db_session)
    with pytest.raises(InvariantViolation) as exc_info:
        await service.save_draft(
            sample_student.id, sample_tree["root"].id, code_text="print(1)"
        )
    assert exc_info.value.reason == hierarchy.ROOT_NOT_GRADABLE

    with pytest.raises(InvariantViolation):
        await service.submit(
            sample_student.id, sample_tree["root"].id, code_text="print(1)"
        )

    with pytest.raises(NotFound):
        await service.submit(9999, sample_tree["linear"].id, code_text="print(1)")


@pytest.mark.asyncio
async def test_delete_draft_returns_image(db_session, sample_tree, sample_student):
    service = SubmissionService(db_session)
    student_id, node_id = sample_student.id, sample_tree["linear"].id
    await service.save_draft(student_id, node_id, code_image_url=IMG_A)

    assert await service.delete_draft(student_id, node_id) == IMG_A
    assert await service.delete_draft(student_id, node_id) is None


@pytest.mark.asyncio
async def test_submit_appends_history(db_session, sample_tree, sample_student):
    service = SubmissionService(db_session)
    student_id, node_id = sample_student.id, sample_tree["one_var"].id

    first = await service.submit(student_id, node_id, code_text="v1")
    second = await service.submit(student_id, node_id, code_image_url=IMG_A)

    history = await service.get_history(student_id, node_id=node_id)
    assert [s.id for s in history] == [
        second.submission.id,
        first.submission.id,
    ]
    assert history[0].code_text is None
    assert history[0].code_image_url == IMG_A

    by_tree = await service.get_history(student_id, tree_id=sample_tree["tree"].id)
    assert len(by_tree) == 2


@pytest.mark.asyncio
async def test_submit_requires_content(db_session, sample_tree, sample_student):
    service = SubmissionService(db_session)
    with pytest.raises(ValidationError):
        await service.submit(sample_student.id, sample_tree["linear"].id, code_text=" ")


@pytest.mark.asyncio
async def test_submit_can_clear_draft(db_session, sample_tree, sample_student):
    service = SubmissionService(db_session)
    student_id, node_id = sample_student.id, sample_tree["linear"].id
    await service.save_draft(
        student_id, node_id, code_text="draft", code_image_url=IMG_A
    )

    outcome = await service.submit(
        student_id, node_id, code_text="final", clear_draft=True
    )
    assert outcome.submission.code_text == "final"
    assert outcome.discarded_image_url == IMG_A
    assert await service.get_draft(student_id, node_id) is None


@pytest.mark.asyncio
async def test_submit_keeps_draft_by_default(db_session, sample_tree, sample_student):
    service = SubmissionService(db_session)
    student_id, node_id = sample_student.id, sample_tree["linear"].id
    await service.save_draft(student_id, node_id, code_text="draft")

    outcome = await service.submit(student_id, node_id, code_text="final")
    assert outcome.discarded_image_url is None
    draft = await service.get_draft(student_id, node_id)
    assert draft.code_text == "draft"


@pytest.mark.asyncio
async def test_score_submission(db_session, sample_tree, sample_student):
    service = SubmissionService(db_session)
    outcome = await service.submit(
        sample_student.id, sample_tree["linear"].id, code_text="answer"
    )
    submission_id = outcome.submission.id

    graded = await service.score_submission(submission_id, 7.5, "nice")
    assert graded.teacher_score == 7.5
    assert graded.teacher_comment == "nice"
    assert graded.scored_at is not None
    assert graded.code_text == "answer"

    first_scored_at = graded.scored_at

    cleared = await service.score_submission(submission_id, None, None)
    assert cleared.teacher_score is None
    assert cleared.teacher_comment is None
    assert cleared.scored_at is None

    regraded = await service.score_submission(submission_id, 9, None)
    assert regraded.teacher_score == 9
    assert regraded.scored_at is not None
    assert regraded.scored_at > first_scored_at

    commented = await service.score_submission(submission_id, None, "see me")
    assert commented.teacher_score is None
    assert commented.scored_at is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("score", [-1, 10.5, float("nan")])
async def test_score_out_of_range(db_session, sample_tree, sample_student, score):
    service = SubmissionService(db_session)
    outcome = await service.submit(
        sample_student.id, sample_tree["linear"].id, code_text="answer"
    )
    with pytest.raises(ValidationError):
        await service.score_submission(outcome.submission.id, score)


@pytest.mark.asyncio
async def test_score_unknown_submission(db_session):
    with pytest.raises(NotFound):
        await SubmissionService(db_session).score_submission(12345, 5)


@pytest.mark.asyncio
async def test_migrate_legacy_drafts_once(db_session, sample_tree, sample_student):
    student_id = sample_student.id
    old = datetime.utcnow() - timedelta(days=3)
    db_session.add_all(
        [
            StudentNodeWork(
                student_id=student_id,
                node_id=sample_tree["linear"].id,
                code_text="legacy",
                updated_at=old,
            ),
            StudentNodeWork(
                student_id=student_id,
                node_id=sample_tree["quadratics"].id,
                code_image_url=IMG_A,
            ),
            StudentNodeSubmission(
                student_id=student_id,
                node_id=sample_tree["quadratics"].id,
                code_text="already submitted",
            ),
        ]
    )
    await db_session.commit()

    service = SubmissionService(db_session)
    assert await service.migrate_legacy_drafts() == 1
    assert await service.migrate_legacy_drafts() == 0

    history = await service.get_history(student_id, node_id=sample_tree["linear"].id)
    assert len(history) == 1
    assert history[0].code_text == "legacy"
    assert history[0].submitted_at.replace(tzinfo=None) == old
    assert await db_session.scalar(select(func.count(StudentNodeSubmission.id))) == 2
