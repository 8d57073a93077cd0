"""
Affiliate links and click tracking.

Builds share and affiliate URLs around a referral code and records
anonymized click analytics.
"""

from typing import Any
from urllib.parse import quote

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.repositories.affiliate_click_repository import (
    AffiliateClickRepository,
)
from app.repositories.referral_code_repository import ReferralCodeRepository
from app.utils.security import hash_ip
from app.utils.validation import normalize_code

USER_AGENT_MAX_LENGTH = 255


def build_share_links(code: str) -> dict[str, str]:
    """
    Build signup share link and QR endpoint for a code.

    Args:
        code: Referral code

    Returns:
        Dict with code, share_url, qr_code_url
    """
    app_url = settings.app_url.rstrip("/")
    api_url = settings.api_url.rstrip("/")
    return {
        "code": code,
        "share_url": f"{app_url}/signup?ref={code}",
        "qr_code_url": f"{api_url}/api/referrals/qr/{code}",
    }


def build_affiliate_link(
    code: str,
    product_id: str | None = None,
    store_id: str | None = None,
    url: str | None = None,
) -> str:
    """
    Build an affiliate link carrying ref=<code>.

    Precedence: product, store, custom URL, general signup link.

    Examples:
        >>> build_affiliate_link("PROMO-X", url="https://shop.example/item?id=1")
        'https://shop.example/item?id=1&ref=PROMO-X'
    """
    app_url = settings.app_url.rstrip("/")

    if product_id:
        return f"{app_url}/marketplace/{quote(str(product_id), safe='')}?ref={code}"
    if store_id:
        return f"{app_url}/store/{quote(str(store_id), safe='')}?ref={code}"
    if url:
        separator = "&" if "?" in url else "?"
        return f"{url}{separator}ref={code}"
    return f"{app_url}/auth?ref={code}"


class AffiliateManager:
    """Records affiliate link clicks."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize affiliate manager."""
        self.session = session
        self.code_repo = ReferralCodeRepository(session)
        self.click_repo = AffiliateClickRepository(session)

    async def track_click(
        self,
        referral_code: str,
        product_id: str | None = None,
        store_id: str | None = None,
        target_url: str | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> dict[str, Any]:
        """
        Record a click on an affiliate link.

        Args:
            referral_code: Code carried by the link
            product_id: Linked product
            store_id: Linked store
            target_url: Linked custom URL
            ip: Client IP (stored only as a truncated hash)
            user_agent: Client user agent

        Returns:
            Dict {"tracked": bool, "message"?: str}
        """
        code = await self.code_repo.get_by_code(normalize_code(referral_code))
        if not code:
            return {"tracked": False, "message": "Invalid code"}

        await self.click_repo.create(
            affiliate_user_id=code.user_id,
            product_id=product_id,
            store_id=store_id,
            target_url=target_url,
            ip_hash=hash_ip(ip),
            user_agent=user_agent[:USER_AGENT_MAX_LENGTH] if user_agent else None,
        )

        logger.info(
            "Affiliate click tracked",
            extra={
                "affiliate_user_id": code.user_id,
                "product_id": product_id,
                "store_id": store_id,
            },
        )
        return {"tracked": True}
