"""Database seeder for local development and manual testing."""
import argparse
import asyncio
import random
import time
from datetime import datetime, timedelta, timezone

from newsroom.config import get_settings
from newsroom.database import Database
from newsroom.models import BlockType, NewsStatus, Section
from newsroom.schemas import (
    AuthorCreate,
    BlockIn,
    CategoryCreate,
    ImageIn,
    NewsCreate,
    RelatedRef,
    TagCreate,
)
from newsroom.services import author_service, category_service, tag_service
from newsroom.services.news_service import AggregateSynchronizer
from newsroom.services.slug_service import SlugResolver

TAGS = ["microondas", "recetas", "tecnologia", "cocina", "ofertas", "reparacion",
        "consejos", "novedades", "marcas", "energia"]

CATEGORIES = {
    "Noticias": ["Industria", "Lanzamientos"],
    "Guias": ["Recetas", "Mantenimiento"],
    "Opinion": [],
}

SECTIONS = [("Portada", "portada"), ("Actualidad", "actualidad"), ("Guias practicas", "guias-practicas")]

TOPICS = ["el nuevo modelo inverter", "cocinar arroz en 10 minutos", "limpiar el plato giratorio",
          "ahorro de energia en casa", "la feria de electrodomesticos", "el grill combinado"]


async def seed(num_news: int, reset: bool = True):
    settings = get_settings()
    database = Database(settings.DATABASE_URL)

    print(f"Seeding {num_news} news items into {settings.DATABASE_URL.split('@')[-1]}")
    start = time.perf_counter()

    if reset:
        await database.drop_all()
        await database.create_all()

    async with database.session_factory() as session:
        tags = [await tag_service.create_tag(session, TagCreate(name=name)) for name in TAGS]
        print(f"  Created {len(tags)} tags")

        categories = []
        for parent_name, children in CATEGORIES.items():
            parent = await category_service.create_category(session, CategoryCreate(name=parent_name))
            categories.append(parent)
            for child_name in children:
                categories.append(
                    await category_service.create_category(
                        session, CategoryCreate(name=child_name, parent_id=parent["id"])
                    )
                )
        print(f"  Created {len(categories)} categories")

        session.add_all([Section(name=name, slug=slug) for name, slug in SECTIONS])
        await session.flush()
        print(f"  Created {len(SECTIONS)} sections")

        authors = []
        for i in range(5):
            authors.append(
                await author_service.create_author(
                    session,
                    AuthorCreate(
                        name=f"Redactor {i}",
                        email=f"redactor{i}@example.com",
                        bio=f"Redactor numero {i} de la seccion de tecnologia.",
                    ),
                )
            )
        print(f"  Created {len(authors)} authors")
        await session.commit()

        sync = AggregateSynchronizer(
            session, SlugResolver(session, max_attempts=settings.SLUG_MAX_ATTEMPTS)
        )
        news_ids: list[int] = []
        for i in range(num_news):
            topic = random.choice(TOPICS)
            published = random.random() > 0.2
            related = random.sample(news_ids, k=min(len(news_ids), 2))
            data = NewsCreate(
                title=f"Todo sobre {topic}",
                summary=f"Resumen de la nota {i} sobre {topic}.",
                author_id=random.choice(authors)["id"],
                main_category_id=random.choice(categories)["id"],
                status=NewsStatus.PUBLISHED if published else NewsStatus.DRAFT,
                published_at=(
                    datetime.now(timezone.utc) - timedelta(days=random.randint(0, 90))
                    if published else None
                ),
                is_featured=random.random() > 0.85,
                blocks=[
                    BlockIn(type=BlockType.HEADING, content=f"Nota {i}"),
                    BlockIn(type=BlockType.TEXT, content=f"Contenido de la nota {i}. " * 10),
                ],
                images=[ImageIn(url=settings.default_image_url, alt_text=topic)],
                tags=[t["id"] for t in random.sample(tags, k=random.randint(1, 3))],
                related_ids=[RelatedRef(news_id=rid) for rid in related],
            )
            news_ids.append(await sync.create_aggregate(data))
            await session.commit()
        print(f"  Created {len(news_ids)} news")

    await database.dispose()
    elapsed = time.perf_counter() - start
    print(f"Done in {elapsed:.2f}s")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the newsroom database")
    parser.add_argument("--count", type=int, default=30, help="Number of news items to create")
    parser.add_argument("--keep", action="store_true", help="Do not drop existing tables first")
    args = parser.parse_args()
    asyncio.run(seed(args.count, reset=not args.keep))
