"""
Public ``/news/<ref>`` routing and crawler previews.

``ref`` is a numeric id or a canonical slug. Browsers are redirected to the
frontend; crawlers get the Open Graph page rendered server-side.
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.config import Settings
from newsroom.database import get_db
from newsroom.dependencies import get_app_settings, get_slug_resolver
from newsroom.exceptions import NotFoundError
from newsroom.rendering import is_bot_user_agent, render_news_aggregate, render_not_found
from newsroom.services import news_service
from newsroom.services.slug_service import SlugResolver

router = APIRouter(tags=["previews"])


async def _preview_response(
    ref: str, db: AsyncSession, slugs: SlugResolver, settings: Settings
) -> HTMLResponse:
    try:
        news = await news_service.find_news(db, ref, slugs)
    except NotFoundError:
        html = render_not_found(
            url=f"{settings.frontend_base_url}/news/{ref}",
            site_name=settings.SITE_NAME,
            default_image=settings.default_image_url,
        )
        return HTMLResponse(html, status_code=404)

    public_ref = news["canonical_slug"] or news["id"]
    html = render_news_aggregate(
        news,
        url=f"{settings.frontend_base_url}/news/{public_ref}",
        site_name=settings.SITE_NAME,
        default_image=settings.default_image_url,
    )
    return HTMLResponse(
        html, headers={"Cache-Control": f"public, max-age={settings.PREVIEW_MAX_AGE}"}
    )


@router.get("/news/{ref}", response_class=HTMLResponse)
async def news_page(
    ref: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    slugs: SlugResolver = Depends(get_slug_resolver),
    settings: Settings = Depends(get_app_settings),
):
    if is_bot_user_agent(request.headers.get("user-agent")):
        return await _preview_response(ref, db, slugs, settings)
    return RedirectResponse(f"{settings.frontend_base_url}/news/{ref}", status_code=302)


@router.get("/og/news/{ref}", response_class=HTMLResponse)
async def news_preview(
    ref: str,
    db: AsyncSession = Depends(get_db),
    slugs: SlugResolver = Depends(get_slug_resolver),
    settings: Settings = Depends(get_app_settings),
):
    return await _preview_response(ref, db, slugs, settings)
