"""
Link-preview HTML for social crawlers.

Crawlers (Facebook, WhatsApp, X, ...) do not run the frontend's JavaScript,
so ``/news/<ref>`` serves them a small server-rendered page carrying Open
Graph and Twitter meta tags instead of the usual redirect.
"""
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

BOT_USER_AGENTS = (
    "facebookexternalhit",
    "facebot",
    "facebook",
    "twitterbot",
    "linkedinbot",
    "slackbot",
    "whatsapp",
    "telegrambot",
    "pinterest",
    "discordbot",
    "embedly",
    "bitlybot",
    "bufferbot",
    "vkshare",
    "viber",
    "yahoo",
    "bingbot",
    "googlebot",
)

_env = Environment(
    loader=FileSystemLoader(str(Path(__file__).parent / "templates")),
    autoescape=select_autoescape(["html"]),
)


def is_bot_user_agent(user_agent: str | None) -> bool:
    if not user_agent:
        return False
    ua = user_agent.lower()
    return any(bot in ua for bot in BOT_USER_AGENTS)


def cover_image(news: dict) -> str | None:
    """URL of the lowest-position image of a serialised aggregate."""
    images = news.get("images") or []
    if not images:
        return None
    return min(images, key=lambda img: img.get("position") or 0)["url"]


def render_news_preview(
    *,
    title: str | None,
    summary: str | None,
    image: str | None,
    url: str,
    published_at: str | None = None,
    author: str | None = None,
    site_name: str,
    default_image: str,
) -> str:
    template = _env.get_template("news_preview.html")
    return template.render(
        title=title or site_name,
        summary=summary or "",
        image=image or default_image,
        has_image=bool(image),
        url=url,
        published_at=published_at or "",
        author=author or "",
        site_name=site_name,
    )


def render_news_aggregate(news: dict, *, url: str, site_name: str, default_image: str) -> str:
    """Preview page for a serialised news aggregate."""
    return render_news_preview(
        title=news.get("title"),
        summary=news.get("summary") or news.get("subtitle"),
        image=cover_image(news),
        url=url,
        published_at=news.get("published_at") or news.get("created_at"),
        author=news.get("author_name"),
        site_name=site_name,
        default_image=default_image,
    )


def render_not_found(*, url: str, site_name: str, default_image: str) -> str:
    return render_news_preview(
        title="Noticia no encontrada",
        summary="La noticia solicitada no existe.",
        image=None,
        url=url,
        site_name=site_name,
        default_image=default_image,
    )
