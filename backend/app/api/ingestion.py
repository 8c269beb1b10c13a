from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
from app.database import get_db
from app.errors import NotFoundError
from app.models import Board, SearchCriteria
from app.schemas import SearchRequest, BrightDataSearchRequest, success_response
from app.auth import get_current_user
from app.api.dependencies import get_search_scraper, get_brightdata_scraper
from app.api.profiles import get_profile_or_404
from app.services.criteria import get_criteria
from app.services.ingestion import ingest, ingest_structured
from app.services.scrapers import BrightDataScraper, TavilyScraper

router = APIRouter()


async def _get_board(db: AsyncSession, board_id: Optional[str]) -> Optional[Board]:
    if not board_id:
        return None
    result = await db.execute(select(Board).where(Board.id == board_id, Board.not_deleted()))
    board = result.scalar_one_or_none()
    if not board:
        raise NotFoundError("Board", board_id)
    return board


@router.get("/health")
async def providers_health(
    search_scraper: TavilyScraper = Depends(get_search_scraper),
    brightdata: BrightDataScraper = Depends(get_brightdata_scraper),
    _: bool = Depends(get_current_user),
):
    return success_response(
        {
            "tavily": {"configured": search_scraper.is_configured()},
            "bright_data": {"configured": brightdata.is_configured()},
        },
        "Provider status retrieved successfully",
    )


@router.post("/search")
async def search_listings(
    request: SearchRequest,
    db: AsyncSession = Depends(get_db),
    scraper: TavilyScraper = Depends(get_search_scraper),
    _: bool = Depends(get_current_user),
):
    if request.search_criteria_id:
        criteria = await get_criteria(db, request.search_criteria_id)
    else:
        # Transient criteria carrying the ad hoc parameters; never added to the session
        criteria = SearchCriteria(
            name="ad hoc",
            keywords=request.keywords,
            locations=request.locations,
            job_type=request.job_type,
            experience_level=request.experience_level,
            is_remote=request.is_remote,
            skills_included=request.skills_included,
        )

    board = await _get_board(db, request.board_id)
    report = await ingest(
        db,
        scraper,
        criteria=criteria,
        board=board,
        query=request.query,
        max_results=request.max_results,
    )
    return success_response(report.to_dict(), f"{report.saved} new listings saved")


@router.post("/brightdata/search")
async def brightdata_search(
    request: BrightDataSearchRequest,
    db: AsyncSession = Depends(get_db),
    scraper: BrightDataScraper = Depends(get_brightdata_scraper),
    _: bool = Depends(get_current_user),
):
    board = await _get_board(db, request.board_id)
    jobs = await scraper.search_jobs(
        query=request.query,
        location=request.location,
        country=request.country.lower(),
        page=request.page,
        limit=request.limit,
        filters=request.filters,
        board_id=board.id if board else None,
    )

    if not request.save:
        return success_response(
            [job.model_dump(exclude={"raw_data"}) for job in jobs],
            f"{len(jobs)} jobs found",
        )

    report = await ingest_structured(db, jobs, scraper.source, board)
    return success_response(report.to_dict(), f"{report.saved} new listings saved")


@router.get("/brightdata/jobs/{job_id}")
async def brightdata_job_details(
    job_id: str,
    scraper: BrightDataScraper = Depends(get_brightdata_scraper),
    _: bool = Depends(get_current_user),
):
    job = await scraper.get_job_details(job_id)
    if job is None:
        raise NotFoundError("Job", job_id)
    return success_response(job.model_dump(exclude={"raw_data"}), "Job details retrieved successfully")


@router.post("/process/{profile_id}", status_code=202)
async def process_profile(
    profile_id: str,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(get_current_user),
):
    await get_profile_or_404(db, profile_id)

    # Import here to avoid circular import
    from app.scheduler import run_profile_pipeline
    background_tasks.add_task(run_profile_pipeline, profile_id)
    return success_response({"profile_id": profile_id, "status": "processing"}, "Profile processing triggered")
