import pytest
from ktree.errors import NotFound
from ktree.services.assembly import iter_preorder
from ktree.services.progress import ProgressService
from ktree.services.scores import BaselineScoreService
from ktree.services.submissions import SubmissionService
from ktree.services.trees import TreeService


@pytest.mark.asyncio
async def test_student_tree_annotations(db_session, sample_tree, sample_student):
    student_id = sample_student.id
    scores = BaselineScoreService(db_session)
    await scores.upsert_score(student_id, sample_tree["linear"].id, 5, "steady")
    await scores.upsert_score(student_id, sample_tree["quadratics"].id, 9)

    submissions = SubmissionService(db_session)
    first = await submissions.submit(
        student_id, sample_tree["one_var"].id, code_text="v1"
    )
    await submissions.score_submission(first.submission.id, 6)
    await submissions.submit(student_id, sample_tree["one_var"].id, code_text="v2")
    await submissions.save_draft(
        student_id, sample_tree["quadratics"].id, code_text="wip"
    )

    view = await ProgressService(db_session).student_tree(
        student_id, sample_tree["tree"].id
    )

    assert view.tree.id == sample_tree["tree"].id
    assert view.summary.node_count == 3
    assert view.summary.scored_count == 2
    assert view.summary.total == 14
    assert view.summary.average == pytest.approx(7.0)

    nodes = {n.name: n for n in iter_preorder(view.root)}
    assert list(nodes) == ["Algebra", "Quadratics", "Linear equations", "One variable"]
    assert nodes["Linear equations"].progress.comment == "steady"
    assert nodes["Quadratics"].progress.draft_code_text == "wip"

    stats = nodes["One variable"].progress.stats
    assert stats.submission_count == 2
    assert stats.latest_code_text == "v2"
    assert stats.latest_score is None
    assert stats.highest_score == 6
    assert stats.average_score == 6
    assert [s.code_text for s in nodes["One variable"].progress.history] == [
        "v2",
        "v1",
    ]

    # Root is annotated but carries no work
    assert nodes["Algebra"].progress.score is None
    assert nodes["Algebra"].progress.stats.submission_count == 0


@pytest.mark.asyncio
async def test_student_trees_lists_every_tree(db_session, sample_tree, sample_student):
    await TreeService(db_session).create_tree("Empty chapter", None, "Empty")

    views = await ProgressService(db_session).student_trees(sample_student.id)
    assert [v.tree.title for v in views] == ["Algebra I", "Empty chapter"]

    empty = views[1]
    assert empty.root.name == "Empty"
    assert empty.root.children == []
    assert empty.summary.node_count == 0
    assert empty.summary.average is None


@pytest.mark.asyncio
async def test_progress_is_isolated_per_student(db_session, sample_tree, sample_student):
    from ktree.services.students import StudentService

    other = await StudentService(db_session).create_student("linus")
    await BaselineScoreService(db_session).upsert_score(
        other.id, sample_tree["linear"].id, 2
    )

    view = await ProgressService(db_session).student_tree(
        sample_student.id, sample_tree["tree"].id
    )
    assert view.summary.scored_count == 0


@pytest.mark.asyncio
async def test_unknown_student_or_tree(db_session, sample_tree, sample_student):
    service = ProgressService(db_session)
    with pytest.raises(NotFound):
        await service.student_trees(9999)
    with pytest.raises(NotFound):
        await service.student_tree(sample_student.id, 9999)
