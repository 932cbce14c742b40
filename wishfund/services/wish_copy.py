import logging

from sqlalchemy import update

from wishfund.models.models import Wish
from wishfund.services.catalog import WishCatalog, WishProgress, build_wish

logger = logging.getLogger("wishfund.catalog")


class WishCopier:
    """Duplicates a wish into another owner's catalog and counts the copy on the source."""

    def __init__(self, catalog: WishCatalog):
        self.catalog = catalog
        self.db = catalog.db

    async def copy(self, source_wish_id: int, target_owner_id: int) -> WishProgress:
        source = await self.catalog.get(source_wish_id)
        duplicate = build_wish(
            target_owner_id,
            name=source.name,
            price=source.price,
            link=source.link,
            image=source.image,
            description=source.description,
        )
        try:
            await self.db.execute(
                update(Wish)
                .where(Wish.id == source.id)
                .values(copied_count=Wish.copied_count + 1)
                .execution_options(synchronize_session=False)
            )
            self.db.add(duplicate)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Wish copied source_id=%s copy_id=%s owner_id=%s",
            source.id,
            duplicate.id,
            target_owner_id,
        )
        return await self.catalog.get_detail(duplicate.id)
