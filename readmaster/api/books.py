# readmaster/api/books.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from readmaster.api.deps import get_session
from readmaster.schemas.book_schemas import BookOut, ExtractedData, ImportUrlRequest, ImportUrlResponse
from readmaster.schemas.commons_schemas import ErrorResponse, SuccessResponse
from readmaster.services.article_service import import_book_from_url

router = APIRouter(
    tags=["books"],
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


@router.post("/books/import-url", status_code=201, response_model=SuccessResponse[ImportUrlResponse])
async def import_url(request: ImportUrlRequest, session: AsyncSession = Depends(get_session)):
    """Fetch an article or text page and add it to the user's library"""
    book, extracted, fetched = await import_book_from_url(
        session,
        user_id=request.user_id,
        url=request.url,
        title=request.title,
        author=request.author,
        description=request.description,
        genre=request.genre,
        tags=request.tags,
        language=request.language,
        is_public=request.is_public,
    )

    return SuccessResponse[ImportUrlResponse](data=ImportUrlResponse(
        book=BookOut.model_validate(book),
        extracted_data=ExtractedData(
            site_name=extracted.site_name,
            published_date=extracted.published_date,
            original_url=request.url,
            final_url=fetched.final_url,
        ),
    ))
