from flask import Blueprint, abort, current_app, redirect, request, url_for

from personal_site.pages import POSTS, POSTS_BY_SLUG, recent_posts, render_page
from personal_site.visitor_log import AlreadySigned, InvalidInput, StoreUnavailable

bp = Blueprint("main", __name__)

LOG_READ_ERROR = "Error fetching visitor log."
LOG_WRITE_ERROR = "Error saving your entry. Please try again."


def visitor_log_service():
    return current_app.extensions["visitor_log"]


def plain_text(message: str, status: int):
    return message, status, {"Content-Type": "text/plain; charset=utf-8"}


@bp.get("/")
def index():
    return render_page(
        "index.html",
        current_app.config["SITE_TITLE"],
        posts=recent_posts(),
    )


@bp.get("/about")
def about():
    return render_page("about.html", "About")


@bp.get("/blog")
def blog():
    return render_page("blog.html", "Blog", posts=sorted(POSTS, key=lambda post: post.published, reverse=True))


@bp.get("/blog/<slug>")
def blog_post(slug):
    post = POSTS_BY_SLUG.get(slug)
    if post is None:
        abort(404)
    return render_page("post.html", post.title, description=post.summary, post=post)


@bp.get("/healthz")
def healthz():
    return plain_text("ok", 200)


def _render_visitor_log(error=None, name=None, status=200):
    service = visitor_log_service()
    visitors = service.list_entries()
    body = render_page(
        "visitor_log.html",
        "Visitor Log",
        visitors=visitors,
        error=error,
        name=name,
        name_max_length=service.name_max_length,
    )
    return body, status


@bp.get("/visitor-log")
def visitor_log():
    try:
        return _render_visitor_log()
    except StoreUnavailable:
        current_app.logger.exception("Visitor log read failed")
        return plain_text(LOG_READ_ERROR, 503)


@bp.post("/sign-log")
def sign_log():
    name = request.form.get("name")
    try:
        outcome = visitor_log_service().try_sign_today(name)
    except InvalidInput as exc:
        try:
            return _render_visitor_log(error=str(exc), name=(name or "").strip(), status=400)
        except StoreUnavailable:
            current_app.logger.exception("Visitor log read failed")
            return plain_text(LOG_READ_ERROR, 503)
    except StoreUnavailable:
        current_app.logger.exception("Visitor log write failed")
        return plain_text(LOG_WRITE_ERROR, 503)

    if isinstance(outcome, AlreadySigned):
        return render_page(
            "already_signed.html",
            "Already signed today",
            name=name.strip(),
            day=outcome.day,
        )
    return redirect(url_for("main.visitor_log"))
