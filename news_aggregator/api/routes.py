from typing import Protocol

from fastapi import APIRouter, Depends, Query, Request
from starlette.responses import JSONResponse

from news_aggregator.core.responses import error_response
from news_aggregator.schemas.article_text import ArticleTextResult

router = APIRouter()


class ArticleTextExtractor(Protocol):
    async def extract(self, input_url: str) -> ArticleTextResult: ...


def get_article_text_service(request: Request) -> ArticleTextExtractor:
    return request.app.state.article_text_service


@router.get("/health")
@router.get("/api/health")
def health() -> dict:
    return {"ok": True}


@router.get("/api/article-text")
async def article_text(
    url: str | None = Query(default=None),
    service: ArticleTextExtractor = Depends(get_article_text_service),
):
    target_url = (url or "").strip()
    if not target_url:
        payload, status = error_response("Missing url query parameter", 400)
        return JSONResponse(payload, status_code=status)

    result = await service.extract(target_url)
    return JSONResponse(result.to_record())
