"""Student-facing endpoints: own trees, drafts and submissions."""

from ktree.auth import require_student
from ktree.clients.blob_storage import BlobStorageClient, get_blob_storage
from ktree.db.base import get_db
from ktree.routes.progress import to_student_tree
from ktree.schemas.common import OkResponse
from ktree.schemas.progress import StudentTreeList
from ktree.schemas.submissions import Draft, DraftUpdate, Submission, SubmissionCreate
from ktree.services.common import UNSET
from ktree.services.progress import ProgressService
from ktree.services.submissions import SubmissionService
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter()


@router.get("/trees", response_model=StudentTreeList)
async def my_trees(
    db: AsyncSession = Depends(get_db),
    student_id: int = Depends(require_student),
) -> StudentTreeList:
    """Every tree with the caller's scores, drafts and submission statistics."""
    views = await ProgressService(db).student_trees(student_id)
    return StudentTreeList(items=[to_student_tree(v) for v in views])


@router.put("/drafts/{node_id}", response_model=Draft)
async def save_draft(
    node_id: int,
    payload: DraftUpdate,
    db: AsyncSession = Depends(get_db),
    student_id: int = Depends(require_student),
    blobs: BlobStorageClient = Depends(get_blob_storage),
) -> Draft:
    """Edit the draft for a node; clearing text and image deletes it."""
    sent = payload.model_fields_set
    image_url = UNSET
    if payload.image is not None:
        image_url = await blobs.upload_image(
            payload.image.image_base64, payload.image.image_mime_type
        )

    try:
        update = await SubmissionService(db).save_draft(
            student_id,
            node_id,
            code_text=payload.code_text if "code_text" in sent else UNSET,
            code_image_url=image_url,
            remove_image=payload.remove_image,
        )
    except Exception:
        if image_url is not UNSET:
            await blobs.remove_image(image_url)
        raise

    if update.discarded_image_url:
        await blobs.remove_image(update.discarded_image_url)
    if update.draft is None:
        return Draft(student_id=student_id, node_id=node_id)
    return Draft.model_validate(update.draft)


@router.delete("/drafts/{node_id}", response_model=OkResponse)
async def delete_draft(
    node_id: int,
    db: AsyncSession = Depends(get_db),
    student_id: int = Depends(require_student),
    blobs: BlobStorageClient = Depends(get_blob_storage),
) -> OkResponse:
    """Discard the draft for a node."""
    image_url = await SubmissionService(db).delete_draft(student_id, node_id)
    if image_url:
        await blobs.remove_image(image_url)
    return OkResponse()


@router.post("/submissions", response_model=Submission, status_code=201)
async def submit(
    payload: SubmissionCreate,
    db: AsyncSession = Depends(get_db),
    student_id: int = Depends(require_student),
    blobs: BlobStorageClient = Depends(get_blob_storage),
) -> Submission:
    """Append a submission for a node."""
    image_url = None
    if payload.image is not None:
        image_url = await blobs.upload_image(
            payload.image.image_base64, payload.image.image_mime_type
        )

    try:
        outcome = await SubmissionService(db).submit(
            student_id,
            payload.node_id,
            code_text=payload.code_text,
            code_image_url=image_url,
            clear_draft=payload.clear_draft,
        )
    except Exception:
        if image_url:
            await blobs.remove_image(image_url)
        raise

    if outcome.discarded_image_url:
        await blobs.remove_image(outcome.discarded_image_url)
    return Submission.model_validate(outcome.submission)
