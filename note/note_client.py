#!/usr/bin/env python3
"""
note.com REST API Client.

A small client for note.com's unofficial JSON endpoints, with 30-second
timeouts and automatic retries. These endpoints are undocumented and may
change without notice.

Environment Variables:
    NOTE_SESSION: Session cookie value (only needed for drafts)
    NOTE_BASE_URL: Override for https://note.com (optional)

Usage as CLI:
    python3 note_client.py profile <username>
    python3 note_client.py articles <username> --page 2
    python3 note_client.py article <note_key> --markdown
    python3 note_client.py comments <note_key>
    python3 note_client.py markdown "## Preview **this**"
    python3 note_client.py draft "Title" --file post.md

Usage as library:
    from note_client import NoteClient
    client = NoteClient()
    profile = client.get_user_profile("note")
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from dotenv import load_dotenv

from markdown_to_note import DocumentTooLargeError, convert
from note_to_markdown import note_html_to_markdown

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Constants
NOTE_BASE_URL = "https://note.com"
USER_AGENT = "Mozilla/5.0 (compatible; note-tools/1.0)"
SESSION_COOKIE = "_note_session_v5"
REQUEST_TIMEOUT = 30
MAX_RETRIES = 3


class NoteError(Exception):
    """Base exception for note.com errors."""
    pass


class NoteAPIError(NoteError):
    """Raised when note.com returns an error response."""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


class NoteNotFoundError(NoteAPIError):
    """Raised when a user or article does not exist (404)."""

    def __init__(self, message: str):
        super().__init__(message, 404)


class NoteAuthError(NoteError):
    """Raised when a request needs a session the client doesn't have."""
    pass


def _segment(value: Any) -> str:
    """Quote a value for use as a single URL path segment."""
    return quote(str(value), safe="")


class NoteClient:
    """
    note.com REST API client.

    Read operations need no authentication. Draft creation needs a session
    cookie, obtained by logging in through a browser.
    """

    def __init__(self, session_cookie: str = None, base_url: str = None):
        """
        Initialize client.

        Args:
            session_cookie: Session cookie value. If not provided, uses the
                            NOTE_SESSION env var.
            base_url: API host. If not provided, uses NOTE_BASE_URL or https://note.com.
        """
        self._session_cookie = session_cookie or os.environ.get("NOTE_SESSION")
        self._base_url = (base_url or os.environ.get("NOTE_BASE_URL") or NOTE_BASE_URL).rstrip("/")
        self._session = requests.Session()
        self._session.headers["Accept"] = "application/json"
        self._session.headers["User-Agent"] = USER_AGENT

    def _request(
        self,
        method: str,
        path: str,
        params: dict = None,
        json_data: dict = None,
        not_found: str = None,
        auth: bool = False,
        retries: int = MAX_RETRIES,
    ) -> Dict[str, Any]:
        """Make a request with retry logic and return the decoded JSON."""
        headers = {}
        if auth:
            if not self._session_cookie:
                raise NoteAuthError(
                    "No note.com session provided.\n"
                    "Set the NOTE_SESSION environment variable to the value of the "
                    f"{SESSION_COOKIE} cookie from a logged-in browser."
                )
            headers["Cookie"] = f"{SESSION_COOKIE}={self._session_cookie}"

        url = f"{self._base_url}{path}"

        try:
            resp = self._session.request(
                method=method,
                url=url,
                headers=headers,
                params=params,
                json=json_data,
                timeout=REQUEST_TIMEOUT,
            )

            if resp.status_code == 404 and not_found:
                raise NoteNotFoundError(not_found)

            if resp.status_code in (401, 403):
                raise NoteAuthError(
                    f"Authentication failed ({resp.status_code}). "
                    "Check that your NOTE_SESSION cookie is current."
                )

            if resp.status_code == 429:
                retry_after = resp.headers.get("Retry-After", "60")
                raise NoteAPIError(f"Rate limited. Retry after {retry_after}s", 429)

            if not resp.ok:
                error_detail = ""
                try:
                    error_json = resp.json()
                    if isinstance(error_json, dict) and "error" in error_json:
                        error = error_json["error"]
                        error_detail = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                    else:
                        error_detail = str(error_json)[:500]
                except ValueError:
                    error_detail = resp.text[:500] if resp.text else "No error details"

                raise NoteAPIError(f"API error {resp.status_code}: {error_detail}", resp.status_code)

            return resp.json()

        except requests.Timeout:
            if retries > 0:
                logger.warning(f"Request timed out, retrying ({retries} left)...")
                return self._request(method, path, params, json_data, not_found, auth, retries - 1)
            raise NoteAPIError(f"Request timed out after {REQUEST_TIMEOUT}s")

        except requests.ConnectionError as e:
            if retries > 0:
                logger.warning(f"Connection error, retrying ({retries} left)...")
                return self._request(method, path, params, json_data, not_found, auth, retries - 1)
            raise NoteAPIError(f"Connection error: {e}")

    # ========== Users ==========

    def get_user_profile(self, username: str) -> Dict[str, Any]:
        """Get a creator's public profile."""
        result = self._request(
            "GET",
            f"/api/v2/creators/{_segment(username)}",
            not_found=f"User not found: {username}",
        )
        user = result.get("data", {})
        logger.info(f"Fetched profile for {user.get('urlname', username)}")

        return {
            "username": user.get("urlname"),
            "nickname": user.get("nickname"),
            "profile": user.get("profile") or "",
            "note_count": user.get("noteCount"),
            "follower_count": user.get("followerCount"),
            "following_count": user.get("followingCount"),
            "profile_image": user.get("profileImagePath"),
            "twitter": user.get("twitterNickname"),
            "instagram": user.get("instagramNickname"),
            "created_at": user.get("createdAt"),
            "profile_url": f"{self._base_url}/{user.get('urlname')}",
        }

    # ========== Articles ==========

    def _article_url(self, key: str) -> str:
        return f"{self._base_url}/n/{key}"

    def get_user_articles(self, username: str, page: int = 1) -> Dict[str, Any]:
        """List one page of a creator's articles."""
        result = self._request(
            "GET",
            f"/api/v2/creators/{_segment(username)}/contents",
            params={"kind": "note", "page": page},
            not_found=f"User not found: {username}",
        )
        data = result.get("data", {})

        articles = [
            {
                "id": article.get("id"),
                "key": article.get("key"),
                "title": article.get("name"),
                "description": article.get("body") or "",
                "published_at": article.get("publishAt") or "",
                "like_count": article.get("likeCount"),
                "comment_count": article.get("commentCount"),
                "is_premium": article.get("isPremium"),
                "eyecatch": article.get("eyecatch"),
                "url": self._article_url(article.get("key")),
            }
            for article in data.get("contents", [])
        ]
        logger.info(f"Fetched {len(articles)} articles for {username} (page {page})")

        return {
            "username": username,
            "page": page,
            "total_count": data.get("totalCount"),
            "is_last_page": data.get("isLastPage"),
            "articles": articles,
        }

    def get_article(self, note_key: str, as_markdown: bool = False) -> Dict[str, Any]:
        """
        Get the full content of an article.

        Args:
            note_key: Article key, e.g. 'n5829f47dd4da'
            as_markdown: Convert the HTML body to markdown

        Returns:
            Article dict with title, body, counts, hashtags, author and url
        """
        result = self._request(
            "GET",
            f"/api/v1/notes/{_segment(note_key)}",
            not_found=f"Article not found: {note_key}",
        )
        article = result.get("data", {})
        user = article.get("user") or {}
        body = article.get("body") or ""

        return {
            "id": article.get("id"),
            "key": article.get("key"),
            "title": article.get("name"),
            "body": note_html_to_markdown(body) if as_markdown else body,
            "published_at": article.get("publishAt") or "",
            "like_count": article.get("likeCount"),
            "comment_count": article.get("commentCount"),
            "is_premium": article.get("isPremium"),
            "hashtags": [h["hashtag"]["name"] for h in article.get("hashtags") or []],
            "author": {
                "username": user.get("urlname"),
                "nickname": user.get("nickname"),
                "profile": user.get("profile") or "",
            },
            "url": self._article_url(article.get("key") or note_key),
        }

    # ========== Comments ==========

    def _format_comment(self, comment: Dict[str, Any]) -> Dict[str, Any]:
        user = comment.get("user") or {}
        return {
            "author": user.get("nickname") or user.get("urlname") or "unknown",
            "text": note_html_to_markdown(comment.get("comment") or ""),
            "created_at": comment.get("created_at") or comment.get("createdAt") or "",
            "replies": [self._format_comment(r) for r in comment.get("replies") or []],
        }

    def get_article_comments(self, note_key: str) -> List[Dict[str, Any]]:
        """Get an article's comment tree, with comment text as markdown."""
        result = self._request(
            "GET",
            f"/api/v1/note/{_segment(note_key)}/comments",
            not_found=f"Article not found: {note_key}",
        )
        data = result.get("data") or []
        if isinstance(data, dict):
            data = data.get("comments") or []
        return [self._format_comment(c) for c in data]

    # ========== Drafts ==========

    def create_draft(self, title: str, text: str) -> Dict[str, Any]:
        """
        Save text as a new draft article.

        The text is converted with markdown_to_note.convert before upload.

        Returns:
            Dict with id, key and url of the draft

        Raises:
            NoteAuthError: If no session cookie is configured
            DocumentTooLargeError: If the text exceeds the converter limit
        """
        body = convert(text)

        created = self._request(
            "POST", "/api/v1/text_notes", json_data={"template_key": None}, auth=True
        ).get("data", {})
        note_id = created.get("id")
        if note_id is None:
            raise NoteAPIError("Draft creation returned no note id")

        self._request(
            "PUT",
            f"/api/v1/text_notes/{_segment(note_id)}",
            json_data={"name": title, "body": body, "status": "draft"},
            auth=True,
        )
        logger.info(f"Saved draft {note_id} ({len(body)} characters of HTML)")

        key = created.get("key")
        return {
            "id": note_id,
            "key": key,
            "url": self._article_url(key) if key else None,
        }


def flatten_comments(comments: List[Dict[str, Any]], depth: int = 0) -> str:
    """
    Render a comment tree as plain text.

    One "author: text" entry per comment, depth first. Replies are indented
    two spaces per level, including continuation lines of multi-line text.
    """
    lines = []
    indent = "  " * depth
    for comment in comments:
        text_lines = (comment.get("text") or "").split("\n")
        lines.append(f"{indent}{comment.get('author', 'unknown')}: {text_lines[0]}")
        lines.extend(f"{indent}  {line}" for line in text_lines[1:])
        replies = comment.get("replies") or []
        if replies:
            lines.append(flatten_comments(replies, depth + 1))
    return "\n".join(lines)


# ========== CLI ==========

def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def format_article(article: dict, verbose: bool = False) -> str:
    """Format an article summary for display."""
    premium = "$" if article.get("is_premium") else " "
    published = (article.get("published_at") or "-")[:10]
    likes = article.get("like_count") or 0
    title = article.get("title") or "Untitled"

    line = f"[{premium}] {published:<10} {likes:>5}♥ {title}"

    if verbose:
        line = f"{article.get('key', ''):<16} {line}"

    return line


def cmd_profile(client: NoteClient, args):
    """Show a user's profile."""
    profile = client.get_user_profile(args.username)
    if args.json:
        _print_json(profile)
        return

    print(f"{profile['nickname']} (@{profile['username']})")
    print(f"URL: {profile['profile_url']}")
    print(f"Notes: {profile['note_count']}  Followers: {profile['follower_count']}  "
          f"Following: {profile['following_count']}")
    if profile.get("twitter"):
        print(f"Twitter: @{profile['twitter']}")
    if profile.get("instagram"):
        print(f"Instagram: @{profile['instagram']}")
    if args.verbose:
        print(f"Created: {profile['created_at']}")
    if profile["profile"]:
        print(f"\n{profile['profile']}")


def cmd_articles(client: NoteClient, args):
    """List a user's articles."""
    result = client.get_user_articles(args.username, page=args.page)
    if args.json:
        _print_json(result)
        return

    for article in result["articles"]:
        print(format_article(article, verbose=args.verbose))

    more = "" if result["is_last_page"] else f", more on page {result['page'] + 1}"
    print(f"\n({len(result['articles'])} articles on page {result['page']}, "
          f"{result['total_count']} total{more})")


def cmd_article(client: NoteClient, args):
    """Show an article."""
    article = client.get_article(args.note_key, as_markdown=args.markdown)
    if args.json:
        _print_json(article)
        return

    print(f"Title: {article['title']}")
    print(f"Author: {article['author']['nickname']} (@{article['author']['username']})")
    print(f"URL: {article['url']}")
    print(f"Published: {article['published_at'] or '-'}")
    print(f"Likes: {article['like_count']}  Comments: {article['comment_count']}")
    if article["hashtags"]:
        print(f"Hashtags: {' '.join(article['hashtags'])}")
    if article["body"]:
        print(f"\n{article['body']}")


def cmd_comments(client: NoteClient, args):
    """Show an article's comments."""
    comments = client.get_article_comments(args.note_key)
    if args.json:
        _print_json(comments)
        return

    if not comments:
        print("(no comments)")
        return
    print(flatten_comments(comments))


def _read_text(text: Optional[str], path: Optional[str]) -> str:
    if path:
        with open(path, encoding="utf-8") as f:
            return f.read()
    if text:
        return text
    if not sys.stdin.isatty():
        return sys.stdin.read()
    print("Error: provide text as argument, via --file, or via stdin", file=sys.stderr)
    sys.exit(1)


def cmd_markdown(client: NoteClient, args):
    """Preview markdown to note.com HTML conversion."""
    print(convert(_read_text(args.text, None)))


def cmd_draft(client: NoteClient, args):
    """Save markdown as a new draft."""
    draft = client.create_draft(args.title, _read_text(args.text, args.file))
    if args.json:
        _print_json(draft)
        return

    print(f"Saved draft {draft['id']}")
    if draft["url"]:
        print(f"URL: {draft['url']}")


def main(argv: Optional[List[str]] = None):
    epilog = """\
Examples:
  note profile <user>             Show a user's profile
  note articles <user> -p 2       List a user's articles (page 2)
  note article <key> --markdown   Show an article as markdown
  note comments <key>             Show an article's comments
  note markdown "## Hi"           Preview HTML conversion
  note draft "Title" -f post.md   Save a file as a draft

Environment:
  NOTE_SESSION    Session cookie (drafts only).
  NOTE_BASE_URL   Optional. Override https://note.com.
"""

    parser = argparse.ArgumentParser(
        prog="note",
        description="note.com CLI - unofficial REST API client",
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show keys and extra fields")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", metavar="command")

    # profile
    profile = subparsers.add_parser("profile", help="Show a user's profile")
    profile.add_argument("username", help="User urlname")
    profile.set_defaults(func=cmd_profile)

    # articles
    articles = subparsers.add_parser("articles", help="List a user's articles")
    articles.add_argument("username", help="User urlname")
    articles.add_argument("-p", "--page", type=int, default=1)
    articles.set_defaults(func=cmd_articles)

    # article
    article = subparsers.add_parser("article", help="Show an article")
    article.add_argument("note_key", help="Article key, e.g. n5829f47dd4da")
    article.add_argument("-m", "--markdown", action="store_true", help="Convert body to markdown")
    article.set_defaults(func=cmd_article)

    # comments
    comments = subparsers.add_parser("comments", help="Show an article's comments")
    comments.add_argument("note_key", help="Article key")
    comments.set_defaults(func=cmd_comments)

    # markdown (preview converter - no client needed)
    markdown = subparsers.add_parser("markdown", help="Preview markdown to note.com HTML conversion")
    markdown.add_argument("text", nargs="?", help="Markdown text (or pipe via stdin)")
    markdown.set_defaults(func=cmd_markdown, no_client=True)

    # draft
    draft = subparsers.add_parser("draft", help="Save markdown as a new draft")
    draft.add_argument("title", help="Article title")
    draft.add_argument("text", nargs="?", help="Markdown body (or use -f / stdin)")
    draft.add_argument("-f", "--file", help="Read markdown body from file")
    draft.set_defaults(func=cmd_draft)

    # Global flags work in any position ("note article X --json")
    raw_args = sys.argv[1:] if argv is None else argv
    global_flags = {"--json", "-v", "--verbose", "--debug"}
    hoisted = [a for a in raw_args if a in global_flags]
    rest = [a for a in raw_args if a not in global_flags]
    args = parser.parse_args(hoisted + rest)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        if getattr(args, "no_client", False):
            args.func(None, args)
        else:
            args.func(NoteClient(), args)
    except (NoteError, DocumentTooLargeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
