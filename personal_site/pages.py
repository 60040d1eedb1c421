from dataclasses import dataclass
from datetime import date, datetime

from flask import current_app, render_template

from personal_site.visitor_log import resolve_zone


@dataclass(frozen=True)
class Post:
    slug: str
    title: str
    published: date
    summary: str
    paragraphs: tuple[str, ...]


POSTS = (
    Post(
        slug="deep-learning-from-scratch",
        title="Deep Learning from Scratch",
        published=date(2019, 9, 10),
        summary="Notes on writing a book that builds neural networks up from first principles.",
        paragraphs=(
            "Most introductions to deep learning start from a framework. The book starts from "
            "functions, derivatives and matrix multiplication, and only then assembles them into "
            "layers and models.",
            "Writing it forced every abstraction to earn its place: if a concept could not be "
            "drawn as a diagram, written as math, and expressed as a few lines of code, it was "
            "not yet understood.",
        ),
    ),
    Post(
        slug="a-visitor-log",
        title="Why this site has a visitor log",
        published=date(2024, 11, 2),
        summary="One name per day, kept like the guest book at the front of an old inn.",
        paragraphs=(
            "The web used to be full of guest books. This site keeps one, with a single rule: "
            "only one visitor gets to sign each day.",
            "If someone beat you to it, come back tomorrow.",
        ),
    ),
)
POSTS_BY_SLUG = {post.slug: post for post in POSTS}


def recent_posts(limit: int = 3) -> list[Post]:
    return sorted(POSTS, key=lambda post: post.published, reverse=True)[:limit]


def page_meta(title: str, description: str | None = None) -> dict:
    config = current_app.config
    return {
        "title": title,
        "description": description or config["SITE_DESCRIPTION"],
        "author": config["SITE_AUTHOR"],
        "site_name": config["SITE_TITLE"],
    }


def long_date(value) -> str:
    """Format a date or instant like "October 17, 2026" in the site zone."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        zone = resolve_zone(current_app.config.get("SITE_TIMEZONE"))
        value = value.astimezone(zone).date() if value.tzinfo else value.date()
    return f"{value:%B} {value.day}, {value.year}"


def render_page(template_name: str, title: str, description: str | None = None, **context) -> str:
    return render_template(
        template_name,
        title=title,
        meta=page_meta(title, description),
        **context,
    )


def init_app(app):
    app.add_template_filter(long_date, "long_date")
