"""Content normalizer: turns any source into plain text with provenance.

Three source shapes arrive from the trigger adapters:

- **webpage**: the URL is fetched and the HTML reduced to readable body
  text.  ``script``, ``style``, ``nav`` and ``footer`` elements are removed
  first so menus and footers do not pollute every chunk of every page.
- **manual**: caller-supplied text passes through untouched.  When only a
  URL is given it is fetched like a webpage.
- **social post**: the post text, plus a description of the attached
  image when there is one.  Video links are not described.

Fetch failures propagate as :class:`FetchError`; there is no fallback
content, because indexing an error page would replace good chunks.
Image description failures never propagate; the post's own text is used.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from urllib.parse import urlparse

import structlog
from bs4 import BeautifulSoup

from src.interfaces.image_describer import IImageDescriber
from src.interfaces.page_fetcher import IPageFetcher
from src.models.knowledge import NormalizedContent, SocialPost, SourceDescriptor, SourceKind
from src.utils.errors import ValidationError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_POST_URL_TEMPLATE = "https://bethel-metro-social.web.app/posts/{post_id}"
IMAGE_DESCRIPTION_LABEL = "[Image description]"

_STRIPPED_TAGS = ["script", "style", "nav", "footer"]
_WHITESPACE = re.compile(r"\s+")

_VIDEO_HOSTS = frozenset(
    {"youtube.com", "www.youtube.com", "m.youtube.com", "youtu.be", "vimeo.com", "player.vimeo.com"}
)
_VIDEO_POST_TYPES = frozenset({"video", "youtube"})


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def extract_page_text(html: str) -> tuple[str | None, str]:
    """Return ``(title, body_text)`` for an HTML document.

    The title is ``None`` when the page has no non-empty ``<title>``.
    Body text has all whitespace runs collapsed to single spaces.
    """
    soup = BeautifulSoup(html, "html.parser")

    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""

    for tag in soup.find_all(_STRIPPED_TAGS):
        tag.decompose()

    root = soup.body
    if root is None:
        for tag in soup.find_all(["head", "title"]):
            tag.decompose()
        root = soup

    text = _WHITESPACE.sub(" ", root.get_text(separator=" ")).strip()
    return (title or None), text


def is_video_link(url: str) -> bool:
    """Return ``True`` for links to video hosting rather than an image."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    host = (parsed.hostname or "").lower()
    if host in _VIDEO_HOSTS:
        return True
    if host.endswith("facebook.com"):
        return "/videos/" in parsed.path or parsed.path.startswith("/watch")
    return False


def post_image_reference(post: SocialPost) -> str | None:
    """Pick the image to describe for *post*, or ``None``.

    For video posts the media URL is the video itself, so only the
    thumbnail is a candidate.
    """
    if (post.type or "").lower() in _VIDEO_POST_TYPES:
        candidates = [post.thumbnail_url]
    else:
        candidates = [post.media_url, post.thumbnail_url]
    for candidate in candidates:
        if candidate and not is_video_link(candidate):
            return candidate
    return None


def post_title(post: SocialPost) -> str:
    """``Social Post M/D/YYYY`` from the post timestamp (UTC)."""
    if not post.timestamp:
        return "Social Post"
    posted = datetime.fromtimestamp(post.timestamp / 1000, tz=timezone.utc)  # noqa: UP017
    return f"Social Post {posted.month}/{posted.day}/{posted.year}"


def post_url(post_id: str, post: SocialPost, template: str = DEFAULT_POST_URL_TEMPLATE) -> str:
    """External link, else the Facebook permalink, else the internal post page."""
    if post.external_url:
        return post.external_url
    if (post.type or "").lower() == "facebook" and post.source_id:
        return f"https://facebook.com/{post.source_id}"
    return template.format(post_id=post_id)


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------

class ContentNormalizer:
    """Converts a :class:`SourceDescriptor` into :class:`NormalizedContent`.

    Parameters
    ----------
    fetcher:
        Retrieves HTML for webpage sources and URL-only manual sources.
    image_describer:
        Optional; without one, post images are ignored.
    post_url_template:
        Internal link used for posts with no external URL.  Must contain
        ``{post_id}``.
    """

    def __init__(
        self,
        fetcher: IPageFetcher,
        image_describer: IImageDescriber | None = None,
        post_url_template: str = DEFAULT_POST_URL_TEMPLATE,
    ) -> None:
        self._fetcher = fetcher
        self._image_describer = image_describer
        self._post_url_template = post_url_template

    async def normalize(self, source: SourceDescriptor) -> NormalizedContent | None:
        """Return plain text and provenance for *source*.

        Returns ``None`` when a webpage or post yields no text at all.

        Raises:
            ValidationError: A manual source has neither text nor URL, or
                its URL produced no text.
            FetchError: The page could not be fetched.
        """
        if source.kind is SourceKind.SOCIAL_POST:
            return await self._normalize_post(source)
        if source.kind is SourceKind.MANUAL:
            return await self._normalize_manual(source)
        return await self._normalize_webpage(source)

    # ------------------------------------------------------------------
    # Per-kind handlers
    # ------------------------------------------------------------------

    async def _normalize_webpage(self, source: SourceDescriptor) -> NormalizedContent | None:
        if not source.url:
            raise ValidationError(message="Webpage source requires a URL")

        page_title, text = await self._fetch_page(source.url)
        if not text:
            logger.warning("webpage_empty", url=source.url)
            return None
        return NormalizedContent(
            text=text,
            title=source.title or page_title or source.url,
            url=source.url,
        )

    async def _normalize_manual(self, source: SourceDescriptor) -> NormalizedContent:
        url = source.url or ""
        if source.text and source.text.strip():
            return NormalizedContent(
                text=source.text,
                title=source.title or "Untitled",
                url=url,
            )

        if not url:
            raise ValidationError(message="Either text or url is required")

        page_title, text = await self._fetch_page(url)
        if not text:
            raise ValidationError(message=f"No text provided or extracted from {url}")
        return NormalizedContent(text=text, title=source.title or page_title or url, url=url)

    async def _normalize_post(self, source: SourceDescriptor) -> NormalizedContent | None:
        post = source.post
        if post is None or not source.post_id:
            raise ValidationError(message="Social post source requires post_id and post")

        base_text = post.content.strip()
        image_ref = post_image_reference(post)
        description = await self._describe(image_ref, source.post_id) if image_ref else None

        if description:
            sections = [base_text] if base_text else []
            sections.append(f"{IMAGE_DESCRIPTION_LABEL}\n{description}")
            text = "\n\n".join(sections)
        else:
            text = base_text

        if not text:
            logger.info("post_without_text_skipped", post_id=source.post_id)
            return None

        return NormalizedContent(
            text=text,
            title=post_title(post),
            url=post_url(source.post_id, post, self._post_url_template),
            has_image=image_ref is not None,
            image_described=bool(description),
        )

    # ------------------------------------------------------------------
    # Collaborator calls
    # ------------------------------------------------------------------

    async def _fetch_page(self, url: str) -> tuple[str | None, str]:
        html = await self._fetcher.fetch(url)
        title, text = extract_page_text(html)
        logger.debug("webpage_normalized", url=url, text_length=len(text))
        return title, text

    async def _describe(self, image_url: str, post_id: str) -> str | None:
        if self._image_describer is None:
            return None
        try:
            description = await self._image_describer.describe(image_url)
        except Exception as exc:  # noqa: BLE001 -- a post is still indexed without its image
            logger.warning(
                "image_description_failed",
                post_id=post_id,
                image_url=image_url,
                error=str(exc),
            )
            return None
        return description.strip() or None
