"""
HTML parsing logic for extracting data from webtoon pages.

This module contains all the parsing functions turning info pages, episode
list pages, reader pages and their comments, search results, homepage
listings and creator profiles into model records. Functions take an already parsed ``HtmlDocument`` and do no I/O.
"""

import re
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Tuple
from urllib.parse import urlparse, parse_qs, urljoin

from models.creator import CreatorInfo
from models.episode import EpisodePreview, EpisodeDetail, Post
from models.meta import Schedule, parse_genre
from models.webtoon import WebtoonId, WtType, WebtoonMetadata, WebtoonSearchResult, expiry_from
from scraper.html import HtmlDocument, HtmlElement
from utils.config import Config
from utils.logger import ParsingError

# Info page
TITLE_SELECTOR = '.detail_header .subj'
THUMBNAIL_SELECTOR = '.detail_header > .thmb > img'
BANNER_SELECTOR = '#content > .detail_bg'
CREATORS_SELECTOR = '.detail_header .author_area'
GENRE_SELECTOR = '.detail_header .genre'
SCHEDULE_SELECTOR = '.detail_body .day_info'
GRADE_SELECTOR = '.detail_body .grade_area .cnt'
SUMMARY_SELECTOR = '.detail_body .summary'

# Episode list page
EPISODE_ITEM_SELECTOR = '#_listUl > li'

# Reader page
PANEL_SELECTORS = ('#_imageList > img', '.viewer_img img')
AUTHOR_NOTE_SELECTOR = '.author_text'
AUTHOR_NAME_SELECTOR = '.author_area .author_name'
AUTHOR_THUMB_SELECTOR = '.author_area > .profile > img'

# Reader page comments
COMMENT_ITEM_SELECTOR = '.wcc_CommentList__root > li.wcc_CommentItem__root'
COMMENT_INSIDE_SELECTOR = '.wcc_CommentItem__inside'
COMMENT_NAME_SELECTOR = '.wcc_CommentHeader__name'
COMMENT_DATE_SELECTOR = 'time.wcc_CommentHeader__createdAt'
COMMENT_TEXT_SELECTOR = 'p.wcc_TextContent__content'
COMMENT_TOP_BADGE_SELECTOR = 'span.wcc_TopBadge__root'
COMMENT_HIDDEN_SELECTOR = 'span.wcc_TopBadge__root, span.sr-only'
COMMENT_SPOILER_SELECTOR = '.wcc_SpoilerContent__root'
COMMENT_REACTION_SELECTOR = '.wcc_CommentReaction__root button.wcc_CommentReaction__action'
COMMENT_DATE_FORMAT = '%b %d, %Y'

# Creator profile page
CREATOR_NAME_SELECTOR = '.creator_profile .creator_name'
CREATOR_FOLLOWERS_SELECTOR = '.creator_profile .creator_followers .cnt'
CREATOR_SERIES_SELECTOR = '.creator_series > li'

BACKGROUND_URL_PATTERN = re.compile(r"""background(?:-image)?\s*:\s*url\(\s*['"]?([^'")]+)['"]?\s*\)""")
COUNT_PATTERN = re.compile(r'^(\d+(?:\.\d+)?)\s*([KM]?)$', re.IGNORECASE)
EPISODE_LABEL_PATTERN = re.compile(r'#\s*(\d+)')

WEBTOON_TYPES = {
    'webtoon': WtType.ORIGINAL,
    'challenge': WtType.CANVAS,
}


def _absolute_url(href: str) -> str:
    return urljoin(Config.BASE_URL + '/', href.replace('&amp;', '&'))


def _trailing_segment(href: Optional[str]) -> Optional[str]:
    """Last path segment of a URL, without query string."""
    if not href:
        return None
    segment = urlparse(href).path.rstrip('/').split('/')[-1]
    return segment or None


def _image_src(element: HtmlElement, field: str) -> str:
    """Image URL, preferring the visible src over the lazy-load attribute."""
    src = element.attr('src') or element.attr('data-url') or element.attr('data-src')
    if not src:
        raise ParsingError(field, f"<{element.name}> has no image source")
    return src


def _parse_int(text: str, field: str) -> int:
    digits = text.replace(',', '').strip()
    try:
        return int(digits)
    except ValueError:
        raise ParsingError(field, f"'{text}' is not a number")


def _parse_count(text: str, field: str) -> int:
    """Parse a displayed count such as ``1,234`` or ``12.3K``."""
    match = COUNT_PATTERN.match(text.replace(',', '').strip())
    if match is None:
        raise ParsingError(field, f"'{text}' is not a count")
    value, suffix = float(match.group(1)), match.group(2).upper()
    return int(round(value * {'': 1, 'K': 1_000, 'M': 1_000_000}[suffix]))


def extract_title_no(url: str) -> Optional[int]:
    """Extract the numeric title_no query parameter from a webtoon URL."""
    query_params = parse_qs(urlparse(url.replace('&amp;', '&')).query)
    title_no = query_params.get('title_no', [''])[0]
    return int(title_no) if title_no.isdigit() else None


def extract_background_url(style: str) -> Optional[str]:
    """Extract the image URL from a CSS ``background`` declaration."""
    match = BACKGROUND_URL_PATTERN.search(style or '')
    return match.group(1).strip() if match else None


# ---------------------------------------------------------------------------
# Webtoon info page
# ---------------------------------------------------------------------------

def parse_creators(document: HtmlDocument) -> Tuple[List[str], Optional[str]]:
    """Extract creator names and, for a single linked creator, its identifier."""
    area = document.require(CREATORS_SELECTOR, 'creators')

    link = area.select_first('a')
    if link is not None:
        return [link.text()], _trailing_segment(link.attr('href'))

    creators = []
    for name in area.text().split(', '):
        name = name.replace('author info', '').strip()
        if name:
            creators.append(name)
    if not creators:
        raise ParsingError('creators', "creator area is empty")
    return creators, None


def parse_schedule(document: HtmlDocument) -> Schedule:
    raw = document.require_text(SCHEDULE_SELECTOR, 'schedule')
    # The "UP" badge is rendered inside the label on update days
    raw = re.sub(r'^UP\b\s*', '', raw)
    return Schedule.parse(raw)


def parse_webtoon_metadata(document: HtmlDocument, webtoon_id: WebtoonId, now: datetime) -> WebtoonMetadata:
    """Extract webtoon metadata from its info page.

    Banner and schedule only exist for Originals. Freshness timestamps are
    set relative to ``now``; the episode list is left unset.
    """
    title = document.require_text(TITLE_SELECTOR, 'title')
    thumbnail = _image_src(document.require(THUMBNAIL_SELECTOR, 'thumbnail'), 'thumbnail')

    banner = None
    schedule = None
    if webtoon_id.wt_type == WtType.ORIGINAL:
        style = document.require(BANNER_SELECTOR, 'banner').require_attr('style', 'banner')
        banner = extract_background_url(style)
        if not banner:
            raise ParsingError('banner', f"no url in style '{style}'")
        schedule = parse_schedule(document)

    creators, creator_id = parse_creators(document)
    genres = [parse_genre(genre.text()) for genre in document.select(GENRE_SELECTOR)]

    counts = [count.text() for count in document.select(GRADE_SELECTOR)]
    if len(counts) < 2:
        raise ParsingError('views', f"expected views and subscribers, found {counts}")
    views, subs = counts[0], counts[1]

    summary = document.require_text(SUMMARY_SELECTOR, 'summary')

    return WebtoonMetadata(
        id=webtoon_id,
        title=title,
        thumbnail=thumbnail,
        banner=banner,
        creators=creators,
        creator_id=creator_id,
        genres=genres,
        schedule=schedule,
        views=views,
        subs=subs,
        summary=summary,
        episodes=None,
        refresh_eps_at=expiry_from(now, Config.EPISODE_REFRESH_INTERVAL),
        expired_at=expiry_from(now, Config.METADATA_EXPIRY)
    )


# ---------------------------------------------------------------------------
# Episode list page
# ---------------------------------------------------------------------------

def parse_episode_number(element: HtmlElement) -> int:
    """Episode number from ``data-episode-no``, else from a ``#<number>`` label."""
    raw = element.attr('data-episode-no')
    if raw is not None:
        return _parse_int(raw, 'episode number')

    label = element.select_first('.tx')
    match = EPISODE_LABEL_PATTERN.search(label.text() if label else element.text())
    if match is None:
        raise ParsingError('episode number', "no data-episode-no attribute nor '#<number>' label")
    return int(match.group(1))


def parse_episode_item(element: HtmlElement, parent_id: WebtoonId) -> EpisodePreview:
    """Build an ``EpisodePreview`` from one ``<li>`` of the episode list."""
    number = parse_episode_number(element)

    posted_at = element.require_text('.date', 'episode date')
    title = re.sub(r'\s*UP$', '', element.require_text('.subj > span', 'episode title'))
    thumbnail = _image_src(element.require('.thmb > img', 'episode thumbnail'), 'episode thumbnail')

    likes_text = element.require_text('.like_area', 'likes')
    likes = _parse_int(re.sub(r'^like\s*', '', likes_text, flags=re.IGNORECASE), 'likes')

    href = element.require('a', 'episode url').require_attr('href', 'episode url')

    return EpisodePreview(
        parent_wt_id=parent_id,
        number=number,
        title=title,
        thumbnail=thumbnail,
        likes=likes,
        posted_at=posted_at,
        ep_url=_absolute_url(href)
    )


def parse_episode_list(document: HtmlDocument, parent_id: WebtoonId) -> Iterator[EpisodePreview]:
    """Yield the episodes of one list page in page order (newest first).

    Parsing is lazy so callers can stop before entries they do not need.
    """
    for element in document.select(EPISODE_ITEM_SELECTOR):
        yield parse_episode_item(element, parent_id)


# ---------------------------------------------------------------------------
# Reader page
# ---------------------------------------------------------------------------

def parse_panels(document: HtmlDocument) -> List[str]:
    """Panel URLs in reading order, read from the lazy-load attribute."""
    for selector in PANEL_SELECTORS:
        images = list(document.select(selector))
        if images:
            return [image.require_attr('data-url', 'panel url') for image in images]
    raise ParsingError('panels', f"no element matches {' or '.join(PANEL_SELECTORS)}")


def parse_episode_detail(document: HtmlDocument, preview: EpisodePreview) -> EpisodeDetail:
    """Extract panels and author information from an episode reader page."""
    panels = parse_panels(document)

    note = document.select_first(AUTHOR_NOTE_SELECTOR)
    author_note = note.text() if note is not None and note.text() else None

    name = document.require(AUTHOR_NAME_SELECTOR, 'author name')
    author_id = None
    if name.name == 'a':
        author_id = _trailing_segment(name.attr('href'))
    else:
        links = list(document.select('.author_area a[href*="/creator/"]'))
        if len(links) == 1:
            author_id = _trailing_segment(links[0].attr('href'))

    author_thumb = _image_src(document.require(AUTHOR_THUMB_SELECTOR, 'author thumbnail'), 'author thumbnail')

    return EpisodeDetail(
        parent_wt_id=preview.parent_wt_id,
        number=preview.number,
        panels=panels,
        author_note=author_note,
        author_name=name.text(),
        author_id=author_id,
        author_thumb=author_thumb
    )


# ---------------------------------------------------------------------------
# Reader page comments
# ---------------------------------------------------------------------------

def parse_posted_at(element: HtmlElement) -> int:
    """Unix timestamp of a comment, from ``datetime`` or the displayed date."""
    raw = element.attr('datetime')
    try:
        if raw:
            posted = datetime.fromisoformat(raw.strip().replace('Z', '+00:00'))
        else:
            posted = datetime.strptime(element.text(), COMMENT_DATE_FORMAT)
    except ValueError:
        raise ParsingError('comment date', f"cannot read '{raw or element.text()}'")
    if posted.tzinfo is None:
        posted = posted.replace(tzinfo=timezone.utc)
    return int(posted.timestamp())


def parse_post(item: HtmlElement, preview: EpisodePreview) -> Post:
    """Build a ``Post`` from one comment ``<li>``, ignoring its replies."""
    post_id = item.require_attr('data-comment-id', 'comment id')
    inside = item.require(COMMENT_INSIDE_SELECTOR, 'comment')

    content = inside.require(COMMENT_TEXT_SELECTOR, 'comment text')
    reactions = []
    for button in inside.select(COMMENT_REACTION_SELECTOR):
        count = button.select_first('span:not(.sr-only)')
        reactions.append(_parse_count(count.text(), 'comment reactions') if count and count.text() else 0)

    return Post(
        wt_id=preview.parent_wt_id,
        ep_num=preview.number,
        id=post_id,
        content=content.text_excluding(COMMENT_HIDDEN_SELECTOR),
        poster_name=inside.require_text(COMMENT_NAME_SELECTOR, 'comment author'),
        posted_at=parse_posted_at(inside.require(COMMENT_DATE_SELECTOR, 'comment date')),
        is_spoiler=inside.select_first(COMMENT_SPOILER_SELECTOR) is not None,
        is_top=content.select_first(COMMENT_TOP_BADGE_SELECTOR) is not None,
        upvotes=reactions[0] if reactions else 0,
        downvotes=reactions[1] if len(reactions) > 1 else 0
    )


def parse_episode_posts(document: HtmlDocument, preview: EpisodePreview) -> List[Post]:
    """Top-level comments of an episode reader page, in page order.

    Replies sit in their own list under each comment and are never returned.
    """
    return [parse_post(item, preview) for item in document.select(COMMENT_ITEM_SELECTOR)]


# ---------------------------------------------------------------------------
# Search and homepage listings
# ---------------------------------------------------------------------------

def parse_search_results(document: HtmlDocument) -> List[WebtoonSearchResult]:
    """Extract webtoons from the search results page."""
    results = []
    for link in document.select('.webtoon_list > li > a'):
        wt_id = _parse_int(link.require_attr('data-title-no', 'webtoon id'), 'webtoon id')

        raw_type = link.require_attr('data-webtoon-type', 'webtoon type').strip().lower()
        wt_type = WEBTOON_TYPES.get(raw_type)
        if wt_type is None:
            raise ParsingError('webtoon type', f"unknown type '{raw_type}'")

        results.append(WebtoonSearchResult(
            id=WebtoonId(wt_id, wt_type),
            title=link.require_text('.info_text > .title', 'title'),
            thumbnail=_image_src(link.require('.image_wrap > img', 'thumbnail'), 'thumbnail'),
            creator=link.require_text('.info_text > .author', 'creator')
        ))
    return results


def parse_originals_listing(document: HtmlDocument, limit: int) -> List[WebtoonSearchResult]:
    """Extract the first ``limit`` Originals of the originals homepage. No creator is listed there."""
    results = []
    for item in document.select('.webtoon_list > li'):
        link = item.require('a', 'webtoon id')
        wt_id = _parse_int(link.require_attr('data-title-no', 'webtoon id'), 'webtoon id')

        results.append(WebtoonSearchResult(
            id=WebtoonId(wt_id, WtType.ORIGINAL),
            title=item.require_text('.title', 'title'),
            thumbnail=_image_src(item.require('.image_wrap > img', 'thumbnail'), 'thumbnail'),
            creator=None
        ))
        if len(results) >= limit:
            break
    return results


def parse_canvas_listing(document: HtmlDocument) -> List[WebtoonSearchResult]:
    """Extract webtoons from a page of the canvas catalog."""
    results = []
    for item in document.select('.challenge_lst li'):
        href = item.require('a', 'webtoon id').require_attr('href', 'webtoon id')
        wt_id = extract_title_no(href)
        if wt_id is None:
            raise ParsingError('webtoon id', f"no title_no in '{href}'")

        results.append(WebtoonSearchResult(
            id=WebtoonId(wt_id, WtType.CANVAS),
            title=item.require_text('.subj', 'title'),
            thumbnail=_image_src(item.require('.img_area > img', 'thumbnail'), 'thumbnail'),
            creator=item.require_text('.author', 'creator')
        ))
    return results


# ---------------------------------------------------------------------------
# Creator profile page
# ---------------------------------------------------------------------------

def parse_creator_webtoon(item: HtmlElement, creator_name: str) -> WebtoonSearchResult:
    link = item.require('a', 'webtoon id')
    href = link.require_attr('href', 'webtoon id')
    wt_id = extract_title_no(href)
    if wt_id is None:
        raise ParsingError('webtoon id', f"no title_no in '{href}'")

    path = urlparse(href).path
    wt_type = WtType.CANVAS if '/challenge/' in path or '/canvas/' in path else WtType.ORIGINAL

    return WebtoonSearchResult(
        id=WebtoonId(wt_id, wt_type),
        title=item.require_text('.title', 'title'),
        thumbnail=_image_src(item.require('img', 'thumbnail'), 'thumbnail'),
        creator=creator_name
    )


def parse_creator_page(document: HtmlDocument, profile_id: str) -> CreatorInfo:
    """Extract a creator's name, follower count and webtoons from their profile.

    The follower count is hidden by some creators and is then left unset.
    """
    name = document.require_text(CREATOR_NAME_SELECTOR, 'creator name')

    followers_element = document.select_first(CREATOR_FOLLOWERS_SELECTOR)
    followers = None
    if followers_element is not None and followers_element.text():
        followers = _parse_count(followers_element.text(), 'followers')

    webtoons = [parse_creator_webtoon(item, name) for item in document.select(CREATOR_SERIES_SELECTOR)]

    return CreatorInfo(profile_id=profile_id, name=name, followers=followers, webtoons=webtoons)
