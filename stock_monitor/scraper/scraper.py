from __future__ import annotations

import asyncio
from urllib.parse import urljoin

import structlog
from bs4 import BeautifulSoup, Tag
from playwright.async_api import Page, async_playwright

from stock_monitor.config import Settings, settings as default_settings
from stock_monitor.contracts.models import ProductSnapshot

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_CHROMIUM_ARGS: list[str] = [
    "--autoplay-policy=user-gesture-required",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-breakpad",
    "--disable-client-side-phishing-detection",
    "--disable-component-update",
    "--disable-default-apps",
    "--disable-dev-shm-usage",
    "--disable-domain-reliability",
    "--disable-extensions",
    "--disable-features=AudioServiceOutOfProcess",
    "--disable-hang-monitor",
    "--disable-ipc-flooding-protection",
    "--disable-notifications",
    "--disable-offer-store-unmasked-wallet-cards",
    "--disable-popup-blocking",
    "--disable-print-preview",
    "--disable-prompt-on-repost",
    "--disable-renderer-backgrounding",
    "--disable-setuid-sandbox",
    "--disable-speech-api",
    "--disable-sync",
    "--hide-scrollbars",
    "--ignore-gpu-blacklist",
    "--metrics-recording-only",
    "--mute-audio",
    "--no-default-browser-check",
    "--no-first-run",
    "--no-pings",
    "--no-sandbox",
    "--no-zygote",
    "--password-store=basic",
    "--use-gl=swiftshader",
    "--use-mock-keychain",
]

_VIEWPORT: dict[str, int] = {"width": 1920, "height": 1080}

_PRODUCT_BLOCK_SELECTOR: str = ".list_block"
_PRODUCT_LINK_SELECTOR: str = "a[href]"
_PRODUCT_TITLE_SELECTOR: str = "a[title]"
_PRODUCT_IMAGE_ALT_SELECTOR: str = "img[alt]"
_PRODUCT_IMAGE_SELECTOR: str = "img[src], img[data-src]"
_ADD_TO_CART_SELECTOR: str = ".ga_bn_btn_addcart"
_OUT_OF_STOCK_MARKERS: tuple[str, ...] = ("out of stock", "sold out", "notify me")
_NON_RENDERED_SELECTOR: str = "script, style, noscript, template"

_UNNAMED_PRODUCT: str = "Unnamed product"


def _attr(tag: Tag, name: str) -> str:
    raw = tag.get(name, "")
    value = raw if isinstance(raw, str) else " ".join(raw)
    return value.strip()


class ListingScraper:
    """Snapshot source for a JS-rendered listing page.

    Renders the page in headless Chromium through Playwright, scrolls to
    trigger lazy loading, then parses the rendered HTML with BeautifulSoup.
    """

    def __init__(self, config: Settings | None = None) -> None:
        self._settings = config or default_settings

    def parse_products(self, html: str, base_url: str) -> dict[str, ProductSnapshot]:
        """Parse every product block of the listing into a snapshot keyed by link."""
        soup = BeautifulSoup(html, "lxml")
        blocks: list[Tag] = soup.select(_PRODUCT_BLOCK_SELECTOR)
        products: dict[str, ProductSnapshot] = {}

        for block in blocks:
            try:
                product = self._parse_single_block(block, base_url)
                if product is not None:
                    products[product.id] = product
            except Exception:
                logger.warning(
                    "product_parse_error",
                    block_html=str(block)[:200],
                    exc_info=True,
                )

        logger.info(
            "products_parsed",
            count=len(products),
            in_stock=sum(1 for p in products.values() if p.in_stock),
        )
        return products

    def _parse_single_block(self, block: Tag, base_url: str) -> ProductSnapshot | None:
        # Only rendered text counts
        for hidden in block.select(_NON_RENDERED_SELECTOR):
            hidden.decompose()

        link_el = block.select_one(_PRODUCT_LINK_SELECTOR)
        if link_el is None:
            return None
        href = _attr(link_el, "href")
        if not href:
            return None
        link = urljoin(base_url, href)

        # Name: title attribute if a titled link exists, otherwise link text; then image alt
        title_el = block.select_one(_PRODUCT_TITLE_SELECTOR)
        if title_el is not None:
            name = _attr(title_el, "title")
        else:
            name = link_el.get_text(strip=True)
        if not name:
            alt_el = block.select_one(_PRODUCT_IMAGE_ALT_SELECTOR)
            name = _attr(alt_el, "alt") if alt_el else ""

        block_text = block.get_text(" ", strip=True).lower()
        out_of_stock = any(marker in block_text for marker in _OUT_OF_STOCK_MARKERS)
        in_stock = block.select_one(_ADD_TO_CART_SELECTOR) is not None and not out_of_stock

        img_el = block.select_one(_PRODUCT_IMAGE_SELECTOR)
        image = ""
        if img_el is not None:
            src = _attr(img_el, "src") or _attr(img_el, "data-src")
            image = urljoin(base_url, src) if src else ""

        return ProductSnapshot(
            id=link,
            name=name or _UNNAMED_PRODUCT,
            in_stock=in_stock,
            link=link,
            image=image,
        )

    async def _auto_scroll(self, page: Page) -> int:
        """Scroll in fixed steps until the bottom or the step limit is reached."""
        distance = self._settings.scroll_distance_px
        delay = self._settings.scroll_delay_ms / 1000
        scrolled = 0
        steps = 0

        while steps < self._settings.max_scrolls:
            height = await page.evaluate("document.body.scrollHeight")
            await page.evaluate("(d) => window.scrollBy(0, d)", distance)
            scrolled += distance
            steps += 1
            if scrolled >= height:
                break
            await asyncio.sleep(delay)

        logger.debug("auto_scroll_done", steps=steps)
        return steps

    async def _render_page(self, url: str) -> str:
        """Load the listing in headless Chromium and return the rendered HTML."""
        log = logger.bind(url=url)
        log.info("browser_render_start")
        try:
            async with async_playwright() as pw:
                browser = await pw.chromium.launch(
                    headless=self._settings.browser_headless,
                    args=_CHROMIUM_ARGS,
                    executable_path=self._settings.chromium_executable_path,
                )
                try:
                    page = await browser.new_page(viewport=_VIEWPORT)
                    await page.goto(
                        url,
                        wait_until="domcontentloaded",
                        timeout=self._settings.navigation_timeout_ms,
                    )
                    await self._auto_scroll(page)
                    html = await page.content()
                    log.info("browser_render_success", html_length=len(html))
                    return html
                finally:
                    await browser.close()
        except asyncio.CancelledError:
            log.warning("browser_render_cancelled")
            raise
        except Exception as exc:
            log.error("browser_render_failed", error=str(exc))
            raise RuntimeError(f"Browser render failed for {url}: {exc}") from exc

    async def acquire(self, url: str) -> dict[str, ProductSnapshot]:
        """Full acquisition pipeline: render, then parse."""
        html = await self._render_page(url)
        products = self.parse_products(html, url)
        logger.info("scrape_complete", url=url, product_count=len(products))
        return products
