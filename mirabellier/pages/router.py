"""Share pages for blog posts and profiles."""

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import HTMLResponse, PlainTextResponse

from mirabellier.auth.dependencies import AuthServiceDep
from mirabellier.content.dependencies import PostRepositoryDep
from mirabellier.pages.templates import render_blog_page, render_profile_page


router = APIRouter(tags=["pages"])


def base_url_for(request: Request) -> str:
    """``scheme://host`` for absolute links, honouring a configured public URL."""
    settings = request.app.state.settings
    if settings.public_base_url:
        return settings.public_base_url.rstrip("/")
    scheme = request.headers.get("x-forwarded-proto") or request.url.scheme
    host = request.headers.get("host") or request.url.netloc
    return f"{scheme}://{host}"


def post_id_candidates(raw: str) -> list[str]:
    """``title-words-<id>`` resolves by its last segment, then by the raw value."""
    candidates = []
    if "-" in raw:
        candidates.append(raw.rsplit("-", 1)[1])
    candidates.append(raw)
    return [c for c in dict.fromkeys(candidates) if c]


@router.get("/blog/{post_ref}", response_class=HTMLResponse, summary="Blog share page")
def blog_page(
    post_ref: str, request: Request, posts: PostRepositoryDep
) -> Response:
    for candidate in post_id_candidates(post_ref):
        post = posts.find(candidate)
        if post is not None:
            break
    else:
        return PlainTextResponse("Not found", status_code=status.HTTP_404_NOT_FOUND)

    page = render_blog_page(
        post_id=post.id,
        title=post.title,
        short_description=post.short_description,
        content=post.content,
        thumbnail=post.thumbnail,
        base_url=base_url_for(request),
        request_path=request.url.path,
    )
    return HTMLResponse(page)


@router.get(
    "/profile/{username}", response_class=HTMLResponse, summary="Profile share page"
)
def profile_page(
    username: str, request: Request, auth_service: AuthServiceDep
) -> Response:
    user = auth_service.get_user_by_username(username)
    if user is None:
        return PlainTextResponse(
            "User not found", status_code=status.HTTP_404_NOT_FOUND
        )

    page = render_profile_page(
        username=user.username,
        bio=user.bio,
        avatar=user.avatar,
        banner=user.banner,
        default_image=request.app.state.settings.default_share_image,
        base_url=base_url_for(request),
        request_path=request.url.path,
    )
    return HTMLResponse(page)
