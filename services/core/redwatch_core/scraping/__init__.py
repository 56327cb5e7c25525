"""Search scraping pipeline: rendering, extraction and item processing."""

from redwatch_core.scraping.downloader import (
    FetchRequest,
    FetchResponse,
    PageDownloader,
    RenderingMiddleware,
)
from redwatch_core.scraping.extraction import CandidateItem, SearchExtractor
from redwatch_core.scraping.processor import ProcessingContext, RedditPostProcessor
from redwatch_core.scraping.renderer import PlaywrightRenderer, Renderer, RenderOptions
from redwatch_core.scraping.spider import RedditSearchSpider

__all__ = [
    "CandidateItem",
    "FetchRequest",
    "FetchResponse",
    "PageDownloader",
    "PlaywrightRenderer",
    "ProcessingContext",
    "RedditPostProcessor",
    "RedditSearchSpider",
    "Renderer",
    "RenderOptions",
    "RenderingMiddleware",
    "SearchExtractor",
]
