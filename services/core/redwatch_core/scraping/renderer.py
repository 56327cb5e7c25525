"""Headless rendering of JavaScript-heavy search pages.

Reddit's search pages only contain results after client-side scripts run.
A Renderer turns a URL into post-render HTML; PlaywrightRenderer is the
production implementation and tests substitute fakes.

Usage:
    options = RenderOptions.from_settings(get_settings())
    renderer = PlaywrightRenderer()

    html = renderer.render("https://www.reddit.com/svc/shreddit/search/?q=widget", options)
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Optional, Protocol

from redwatch_core.domain.errors import RenderError

logger = logging.getLogger(__name__)


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_USER_AGENTS = (
    # Chrome on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/118.0.0.0 Safari/537.36",
    # Chrome on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    # Firefox on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:120.0) Gecko/20100101 Firefox/120.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:119.0) Gecko/20100101 Firefox/119.0",
    # Firefox on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:120.0) Gecko/20100101 Firefox/120.0",
    # Safari on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.6 Safari/605.1.15",
    # Edge on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0",
    # Chrome on Linux
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
)

# Scrolls until the page stops growing or max_scrolls is reached, then
# returns to the top so lazily rendered cards stay in the DOM.
SCROLL_SCRIPT = """
async ({initialDelay, maxScrolls, scrollDelay}) => {
    const delay = ms => new Promise(resolve => setTimeout(resolve, ms));
    try {
        await delay(initialDelay);
        let lastHeight = document.body.scrollHeight;
        let scrollCount = 0;
        while (scrollCount < maxScrolls) {
            window.scrollTo(0, document.body.scrollHeight);
            await delay(scrollDelay);
            const newHeight = document.body.scrollHeight;
            if (newHeight === lastHeight) {
                break;
            }
            lastHeight = newHeight;
            scrollCount++;
        }
        window.scrollTo(0, 0);
        await delay(1000);
        return document.body.innerHTML;
    } catch (error) {
        return document.body.innerHTML;
    }
}
"""


@dataclass
class RenderOptions:
    """Per-request rendering configuration.

    Attributes:
        window_width: Viewport width in pixels
        window_height: Viewport height in pixels
        timeout: Ceiling for the whole render, in seconds
        wait_until_network_idle: Wait for network idle instead of load
        enable_scrolling: Auto-scroll to trigger lazy-loaded results
        max_scrolls: Upper bound on scroll steps
        scroll_delay_ms: Pause after each scroll step
        initial_delay_ms: Pause before the first scroll step
        rotate_user_agents: Pick a random agent per request
        user_agent: Fixed agent used when rotation is off
        user_agents_pool: Rotation pool; empty means DEFAULT_USER_AGENTS
    """

    window_width: int = 1920
    window_height: int = 1080
    timeout: int = 300
    wait_until_network_idle: bool = True
    enable_scrolling: bool = True
    max_scrolls: int = 10
    scroll_delay_ms: int = 3000
    initial_delay_ms: int = 3000
    rotate_user_agents: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    user_agents_pool: list[str] = field(default_factory=list)

    @classmethod
    def from_settings(cls, settings) -> "RenderOptions":
        return cls(
            window_width=settings.render_window_width,
            window_height=settings.render_window_height,
            timeout=settings.render_timeout,
            wait_until_network_idle=settings.render_wait_until_network_idle,
            enable_scrolling=settings.render_enable_scrolling,
            max_scrolls=settings.render_max_scrolls,
            scroll_delay_ms=settings.render_scroll_delay_ms,
            initial_delay_ms=settings.render_initial_delay_ms,
            rotate_user_agents=settings.render_rotate_user_agents,
            user_agent=settings.render_user_agent,
            user_agents_pool=list(settings.render_user_agents_pool),
        )


def choose_user_agent(options: RenderOptions, rng: Optional[random.Random] = None) -> str:
    """Pick the user agent for one request."""
    if not options.rotate_user_agents:
        return options.user_agent
    pool = options.user_agents_pool or DEFAULT_USER_AGENTS
    return (rng or random).choice(list(pool))


class Renderer(Protocol):
    """Turns a URL into post-render HTML or raises RenderError."""

    def render(self, url: str, options: RenderOptions) -> str: ...


class PlaywrightRenderer:
    """Renders pages in headless Chromium through Playwright."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng

    def render(self, url: str, options: RenderOptions) -> str:
        """Render url and return the body HTML.

        Raises:
            RenderError: If the browser fails to launch, navigate or evaluate.
        """
        from playwright.sync_api import Error as PlaywrightError, sync_playwright

        user_agent = choose_user_agent(options, self.rng)
        timeout_ms = options.timeout * 1000
        wait_until = "networkidle" if options.wait_until_network_idle else "load"

        try:
            with sync_playwright() as pw:
                browser = pw.chromium.launch(headless=True, args=["--no-sandbox"])
                try:
                    context = browser.new_context(
                        user_agent=user_agent,
                        viewport={"width": options.window_width, "height": options.window_height},
                        ignore_https_errors=True,
                    )
                    page = context.new_page()
                    page.set_default_timeout(timeout_ms)
                    page.on("dialog", lambda dialog: dialog.dismiss())

                    page.goto(url, wait_until=wait_until, timeout=timeout_ms)

                    if options.enable_scrolling:
                        return page.evaluate(
                            SCROLL_SCRIPT,
                            {
                                "initialDelay": options.initial_delay_ms,
                                "maxScrolls": options.max_scrolls,
                                "scrollDelay": options.scroll_delay_ms,
                            },
                        )
                    return page.inner_html("body")
                finally:
                    browser.close()
        except PlaywrightError as e:
            raise RenderError(f"Rendering {url} failed: {e}") from e
