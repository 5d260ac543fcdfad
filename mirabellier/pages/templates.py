"""Share-page HTML for social crawlers.

Small documents carrying OpenGraph/Twitter metadata that send browsers on to
the single-page app. Every interpolated value is HTML-escaped.
"""

import html
import json
import re
import unicodedata
from typing import Any
from urllib.parse import quote


DESCRIPTION_LENGTH = 160
SLUG_MAX_LENGTH = 80


# ==============================================================================
# Helpers
# ==============================================================================


def escape(value: Any) -> str:
    """HTML-escape a value; None renders as an empty string."""
    return html.escape("" if value is None else str(value), quote=True)


def slugify(value: str | None) -> str:
    """URL slug from a title.

    Example:
        >>> slugify("Hello, Wörld!  Again")
        'hello-world-again'
    """
    if not value:
        return ""
    text = unicodedata.normalize("NFKD", value.lower())
    text = re.sub(r"[^a-z0-9\s-]", "", text).strip()
    text = re.sub(r"\s+", "-", text)
    text = re.sub(r"-+", "-", text)
    return text[:SLUG_MAX_LENGTH]


def extract_text(node: Any) -> str:
    """Plain text of a rich-text editor document (``type: text`` leaves)."""
    if not node:
        return ""
    if isinstance(node, str):
        return node
    if isinstance(node, list):
        return " ".join(extract_text(child) for child in node)
    if isinstance(node, dict):
        if node.get("type") == "text":
            return str(node.get("text") or "")
        if node.get("content"):
            return extract_text(node["content"])
    return ""


def post_description(short_description: str | None, content: Any) -> str:
    if short_description:
        return short_description
    return extract_text(content)[:DESCRIPTION_LENGTH]


def resolve_image_url(image: str | None, base_url: str) -> str:
    """Absolute URL for an image reference.

    Absolute URLs are kept, ``/path`` is joined to the base URL, and bare file
    names are assumed to live in the image store.
    """
    if not image:
        return ""
    if re.match(r"^https?://", image, re.IGNORECASE):
        return image
    if image.startswith("/"):
        return f"{base_url}{image}"
    return f"{base_url}/images/{image}"


# ==============================================================================
# Template: Blog Post
# ==============================================================================

BLOG_TEMPLATE = """<!doctype html>
<html>
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width,initial-scale=1" />
    <title>{title}</title>
    <meta name="description" content="{description}" />
    <meta property="og:type" content="article" />
    <meta property="og:title" content="{title}" />
    <meta property="og:description" content="{description}" />
    {og_image}
    <meta property="og:url" content="{page_url}" />
    <meta name="twitter:card" content="summary_large_image" />
    <meta name="twitter:title" content="{title}" />
    <meta name="twitter:description" content="{description}" />
    {twitter_image}
    <link rel="canonical" href="{canonical_url}" />
    <meta http-equiv="refresh" content="0;url={spa_path}" />
  </head>
  <body>
    <h1>{title}</h1>
    <p>{description}</p>
    <p><a href="{spa_path}">Open in app</a></p>
  </body>
</html>
"""


def render_blog_page(
    post_id: str,
    title: str,
    short_description: str | None,
    content: Any,
    thumbnail: str | None,
    base_url: str,
    request_path: str,
) -> str:
    """Render the share page for a blog post.

    Args:
        post_id: Post id (appended to the slug in the app path)
        title: Post title
        short_description: Teaser; falls back to the start of the content text
        content: Editor JSON document
        thumbnail: Image reference (absolute, ``/path`` or file name)
        base_url: ``scheme://host`` of this server
        request_path: Path the crawler requested

    Returns:
        HTML document
    """
    title = title or "Untitled"
    description = post_description(short_description, content)
    image_url = resolve_image_url(thumbnail, base_url)
    spa_path = f"/blog/{slugify(title)}-{quote(post_id, safe='')}"

    og_image = twitter_image = ""
    if image_url:
        og_image = f'<meta property="og:image" content="{escape(image_url)}" />'
        twitter_image = f'<meta name="twitter:image" content="{escape(image_url)}" />'

    return BLOG_TEMPLATE.format(
        title=escape(title),
        description=escape(description),
        og_image=og_image,
        twitter_image=twitter_image,
        page_url=escape(f"{base_url}{request_path}"),
        canonical_url=escape(f"{base_url}{spa_path}"),
        spa_path=escape(spa_path),
    )


# ==============================================================================
# Template: User Profile
# ==============================================================================

PROFILE_TEMPLATE = """<!doctype html>
<html>
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width,initial-scale=1" />
    <title>{title}</title>
    <meta name="description" content="{description}" />
    <meta property="og:type" content="profile" />
    <meta property="og:title" content="{title}" />
    <meta property="og:description" content="{description}" />
    <meta property="og:image" content="{image_url}" />
    <meta property="og:image:width" content="1200" />
    <meta property="og:image:height" content="630" />
    <meta property="og:url" content="{page_url}" />
    <meta property="profile:username" content="{username}" />
    <meta name="twitter:card" content="summary_large_image" />
    <meta name="twitter:title" content="{title}" />
    <meta name="twitter:description" content="{description}" />
    <meta name="twitter:image" content="{image_url}" />
    <link rel="canonical" href="{canonical_url}" />
    <script>setTimeout(function () {{ window.location.href = {spa_path_js}; }}, 100)</script>
  </head>
  <body>
    <p><a href="{spa_path}">{title}</a></p>
  </body>
</html>
"""


def render_profile_page(
    username: str,
    bio: str | None,
    avatar: str | None,
    banner: str | None,
    default_image: str,
    base_url: str,
    request_path: str,
) -> str:
    """Render the share page for a user profile.

    The preview image is the banner, else the avatar, else the default image.
    """
    title = f"{username}'s Profile"
    description = bio or f"Check out {username}'s profile"
    image_url = (
        resolve_image_url(banner, base_url)
        or resolve_image_url(avatar, base_url)
        or resolve_image_url(default_image, base_url)
    )
    spa_path = f"/#/profile/{quote(username, safe='')}"

    return PROFILE_TEMPLATE.format(
        title=escape(title),
        description=escape(description),
        image_url=escape(image_url),
        page_url=escape(f"{base_url}{request_path}"),
        username=escape(username),
        canonical_url=escape(f"{base_url}{spa_path}"),
        spa_path=escape(spa_path),
        spa_path_js=json.dumps(spa_path),
    )
