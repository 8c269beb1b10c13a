from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
from app.database import get_db
from app.errors import NotFoundError
from app.models import Board
from app.schemas import BoardCreate, BoardUpdate, BoardResponse, success_response
from app.auth import get_current_user
from app.api.dependencies import paginate

router = APIRouter()


async def _get_board(db: AsyncSession, board_id: str) -> Board:
    result = await db.execute(select(Board).where(Board.id == board_id, Board.not_deleted()))
    board = result.scalar_one_or_none()
    if not board:
        raise NotFoundError("Board", board_id)
    return board


@router.get("")
async def list_boards(
    is_active: Optional[bool] = Query(None),
    type: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(15, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    query = select(Board).where(Board.not_deleted())
    if is_active is not None:
        query = query.where(Board.is_active.is_(is_active))
    if type:
        query = query.where(Board.type == type)

    boards, pagination = await paginate(db, query.order_by(Board.name), page, per_page)
    return success_response(
        [BoardResponse.model_validate(board) for board in boards],
        "Boards retrieved successfully",
        pagination,
    )


@router.post("", status_code=201)
async def create_board(
    data: BoardCreate,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    board = Board(**data.model_dump())
    db.add(board)
    await db.commit()
    await db.refresh(board)
    return success_response(BoardResponse.model_validate(board), "Board created successfully")


@router.get("/{board_id}")
async def get_board(
    board_id: str,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    board = await _get_board(db, board_id)
    return success_response(BoardResponse.model_validate(board), "Board retrieved successfully")


@router.patch("/{board_id}")
async def update_board(
    board_id: str,
    update: BoardUpdate,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    board = await _get_board(db, board_id)

    update_data = update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(board, field, value)

    await db.commit()
    await db.refresh(board)
    return success_response(BoardResponse.model_validate(board), "Board updated successfully")


@router.delete("/{board_id}")
async def delete_board(
    board_id: str,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    board = await _get_board(db, board_id)
    board.soft_delete()
    board.is_active = False
    await db.commit()
    return success_response(None, "Board deleted successfully")
