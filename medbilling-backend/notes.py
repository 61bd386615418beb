# notes.py
import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, HTTPException, status

from models import database, notes
from schemas import Message, NoteIn, NoteOut, NoteResponse, NoteUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notes", tags=["notes"])


def _note_from_row(row) -> NoteOut:
    return NoteOut(**{column.name: row[column.name] for column in notes.columns})


async def _fetch_note(note_id: int):
    row = await database.fetch_one(notes.select().where(notes.c.id == note_id))
    if not row:
        raise HTTPException(status_code=404, detail="Note not found.")
    return row


@router.get("", response_model=List[NoteOut])
async def get_all_notes():
    """
    List every note, newest first.
    """
    rows = await database.fetch_all(notes.select().order_by(notes.c.created_at.desc(), notes.c.id.desc()))
    return [_note_from_row(row) for row in rows]


@router.get("/{note_id}", response_model=NoteOut)
async def get_note_by_id(note_id: int):
    return _note_from_row(await _fetch_note(note_id))


@router.post("", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
async def create_note(note: NoteIn):
    now = datetime.utcnow()
    note_id = await database.execute(
        notes.insert().values(title=note.title, content=note.content, created_at=now, updated_at=now)
    )
    logger.info("Created note %s", note_id)
    return {"message": "Note created successfully.", "note": _note_from_row(await _fetch_note(note_id))}


@router.put("/{note_id}", response_model=NoteOut)
async def update_note(note_id: int, note: NoteUpdate):
    """
    Update title and/or content of a note.
    """
    await _fetch_note(note_id)
    update_data = note.model_dump(exclude_unset=True, exclude_none=True)
    await database.execute(
        notes.update()
        .where(notes.c.id == note_id)
        .values(**update_data, updated_at=datetime.utcnow())
    )
    return _note_from_row(await _fetch_note(note_id))


@router.delete("/{note_id}", response_model=Message)
async def delete_note(note_id: int):
    await _fetch_note(note_id)
    await database.execute(notes.delete().where(notes.c.id == note_id))
    logger.info("Deleted note %s", note_id)
    return {"message": "Note deleted successfully."}
