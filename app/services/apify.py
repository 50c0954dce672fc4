import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Optional, Protocol

import httpx

from app.analytics.normalizer import normalize, normalize_post, normalize_profile
from app.core.config import Settings
from app.core.errors import NotFoundError, RateLimitedError, UpstreamUnavailableError
from app.models.instagram import HashtagSample, Profile, ProfileData

logger = logging.getLogger(__name__)

SUCCEEDED = "SUCCEEDED"
FAILED_STATUSES = ("FAILED", "ABORTED", "TIMED-OUT", "TIMED_OUT")


class InstagramDataSource(Protocol):
    """What the tool handlers need from a scraping provider."""

    async def fetch_profile_and_posts(self, username: str, max_posts: int) -> ProfileData:
        ...

    async def search_profiles_by_hashtag(self, hashtag: str, limit: int) -> List[Profile]:
        ...

    async def fetch_hashtag(self, hashtag: str, limit: int) -> HashtagSample:
        ...


class ApifyClient:
    """Instagram data through Apify actors: start a run, poll it, read its dataset."""

    def __init__(
        self,
        api_token: Optional[str],
        base_url: str = "https://api.apify.com/v2",
        profile_actor: str = "apify~instagram-profile-scraper",
        scraper_actor: str = "apify~instagram-scraper",
        poll_interval: int = 5,
        max_wait_time: int = 300,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.profile_actor = profile_actor
        self.scraper_actor = scraper_actor
        self.poll_interval = max(1, poll_interval)
        self.max_wait_time = max_wait_time
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "ApifyClient":
        return cls(
            api_token=settings.apify_api_token,
            base_url=settings.apify_base_url,
            profile_actor=settings.apify_profile_actor,
            scraper_actor=settings.apify_scraper_actor,
            poll_interval=settings.apify_poll_interval,
            max_wait_time=settings.apify_max_wait_time,
            timeout=settings.apify_request_timeout,
        )

    async def fetch_profile_and_posts(self, username: str, max_posts: int) -> ProfileData:
        """Fetch a profile and its most recent posts.

        Args:
            username: The Instagram handle, without the leading ``@``.
            max_posts: Upper bound on the number of posts returned.

        Returns:
            The normalized profile and posts.

        Raises:
            NotFoundError: If the account does not exist or has no posts.
            RateLimitedError: If Apify throttles the request.
            UpstreamUnavailableError: For any other Apify failure.
        """

        username = username.strip().lstrip("@")
        logger.info("Fetching profile and %s posts for @%s", max_posts, username)

        profile_items, post_items = await _gather_or_cancel(
            self._run_actor(self.profile_actor, {"usernames": [username]}),
            self._run_actor(
                self.scraper_actor,
                {
                    "directUrls": [f"https://www.instagram.com/{username}/"],
                    "resultsType": "posts",
                    "resultsLimit": max_posts,
                    "addParentData": False,
                },
            ),
        )

        raw_profile = _first_valid(profile_items)
        if raw_profile is None:
            raise NotFoundError(f"Profile @{username} not found")

        raw_posts = _valid(post_items) or _valid(raw_profile.get("latestPosts") or [])
        if not raw_posts:
            raise NotFoundError(f"No posts found for profile @{username}")

        profile, posts = normalize(raw_profile, raw_posts[:max_posts])
        if not profile.username:
            profile = profile.model_copy(update={"username": username})

        logger.info("Fetched @%s: %s posts", profile.username, len(posts))
        return ProfileData(profile=profile, posts=posts)

    async def search_profiles_by_hashtag(self, hashtag: str, limit: int) -> List[Profile]:
        tag = hashtag.strip().lstrip("#")
        logger.info("Searching profiles posting #%s (limit %s)", tag, limit)

        post_items = await self._run_actor(
            self.scraper_actor,
            {
                "directUrls": [f"https://www.instagram.com/explore/tags/{tag}/"],
                "resultsType": "posts",
                "resultsLimit": limit * 2,
                "addParentData": True,
            },
        )

        owners = list(
            dict.fromkeys(item["ownerUsername"] for item in _valid(post_items) if item.get("ownerUsername"))
        )[:limit]
        if not owners:
            return []

        profile_items = await self._run_actor(self.profile_actor, {"usernames": owners})
        profiles = [normalize_profile(item) for item in _valid(profile_items)]
        profiles = [p for p in profiles if p.username]
        logger.info("Found %s unique profiles for #%s", len(profiles), tag)
        return profiles

    async def fetch_hashtag(self, hashtag: str, limit: int) -> HashtagSample:
        tag = hashtag.strip().lstrip("#").lower()
        logger.info("Fetching hashtag details for #%s", tag)

        items = await self._run_actor(
            self.scraper_actor,
            {
                "directUrls": [f"https://www.instagram.com/explore/tags/{tag}/"],
                "resultsType": "details",
                "resultsLimit": limit,
            },
        )

        details = _first_valid(items)
        if details is None:
            raise NotFoundError(f"Hashtag #{tag} not found")

        raw_posts = _valid((details.get("latestPosts") or []) + (details.get("topPosts") or []))
        seen = set()
        posts = []
        for raw in raw_posts:
            post = normalize_post(raw)
            key = post.id or post.shortcode
            if key and key in seen:
                continue
            seen.add(key)
            posts.append(post)

        total = details.get("postsCount")
        return HashtagSample(
            hashtag=tag,
            total_posts=total if isinstance(total, int) and total > 0 else 0,
            posts=posts[:limit],
        )

    async def _run_actor(self, actor: str, run_input: Dict[str, Any]) -> List[Any]:
        if not self.api_token:
            raise UpstreamUnavailableError("Apify API token is not configured")

        headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                run = await self._start_run(client, actor, run_input)
                if run.get("status") != SUCCEEDED:
                    await self._wait_for_run(client, run["id"])
                return await self._fetch_dataset_items(client, run["defaultDatasetId"])
        except httpx.TimeoutException as exc:
            logger.error("Apify request timed out for actor %s", actor)
            raise UpstreamUnavailableError(f"Apify request timed out: {exc}") from exc
        except httpx.RequestError as exc:
            logger.error("Apify request failed for actor %s: %s", actor, exc)
            raise UpstreamUnavailableError(f"Apify request failed: {exc}") from exc

    async def _start_run(
        self,
        client: httpx.AsyncClient,
        actor: str,
        run_input: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Start an actor run.

        Returns:
            The run object, containing at least ``id`` and ``defaultDatasetId``.

        Raises:
            UpstreamUnavailableError: If the response carries no run id.
        """

        logger.info("Starting Apify actor %s", actor)
        logger.debug("Actor input: %s", run_input)

        resp = await client.post(f"/acts/{actor}/runs", json=run_input)
        _raise_for_status(resp, "run start")

        run = _run_data(resp, "run start")
        if not run.get("id") or not run.get("defaultDatasetId"):
            raise UpstreamUnavailableError(f"Unexpected Apify run response: {resp.text}")

        logger.info("Apify run %s started (status=%s)", run["id"], run.get("status"))
        return run

    async def _wait_for_run(self, client: httpx.AsyncClient, run_id: str) -> None:
        """Poll an actor run until it succeeds.

        Raises:
            UpstreamUnavailableError: If the run fails, is aborted, or is not
                finished within ``max_wait_time`` seconds.
        """

        interval = self.poll_interval
        max_attempts = max(1, self.max_wait_time // interval)

        logger.info(
            "Polling run %s (max %s attempts, %ss interval)",
            run_id,
            max_attempts,
            interval,
        )

        last_status = None

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                await asyncio.sleep(interval)

            resp = await client.get(f"/actor-runs/{run_id}")
            _raise_for_status(resp, "run status")

            status = _run_data(resp, "run status").get("status")
            last_status = status
            logger.debug("Run %s attempt %s/%s: %s", run_id, attempt, max_attempts, status)

            if status == SUCCEEDED:
                logger.info("Run %s succeeded", run_id)
                return

            if status in FAILED_STATUSES:
                raise UpstreamUnavailableError(f"Apify run {run_id} ended with status {status}")

        raise UpstreamUnavailableError(
            f"Apify run {run_id} not finished after {self.max_wait_time} seconds "
            f"(last status={last_status})"
        )

    async def _fetch_dataset_items(self, client: httpx.AsyncClient, dataset_id: str) -> List[Any]:
        resp = await client.get(
            f"/datasets/{dataset_id}/items", params={"clean": "true", "format": "json"}
        )
        _raise_for_status(resp, "dataset fetch")

        data = _json(resp, "dataset fetch", list)
        logger.debug("Dataset %s returned %s items", dataset_id, len(data))
        return data


def _raise_for_status(resp: httpx.Response, context: str) -> None:
    if resp.status_code == 429:
        logger.warning("Apify rate limit hit during %s", context)
        raise RateLimitedError("Apify rate limit exceeded, try again later")
    try:
        resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.error("Apify %s failed: %s", context, exc.response.text)
        raise UpstreamUnavailableError(
            f"Apify {context} error (HTTP {exc.response.status_code}): {exc.response.text}"
        ) from exc


def _json(resp: httpx.Response, context: str, expected: type) -> Any:
    """Decode a response body that must be JSON of type ``expected``."""
    try:
        body = resp.json()
    except ValueError as exc:
        logger.error("Apify %s returned a non-JSON body: %s", context, resp.text[:200])
        raise UpstreamUnavailableError(
            f"Apify {context} returned invalid JSON: {resp.text[:200]}"
        ) from exc
    if not isinstance(body, expected):
        logger.error("Apify %s returned unexpected JSON: %s", context, resp.text[:200])
        raise UpstreamUnavailableError(
            f"Apify {context} returned unexpected JSON: {resp.text[:200]}"
        )
    return body


def _run_data(resp: httpx.Response, context: str) -> Dict[str, Any]:
    data = _json(resp, context, dict).get("data")
    return data if isinstance(data, dict) else {}


async def _gather_or_cancel(*coros: Awaitable[Any]) -> List[Any]:
    """Like ``asyncio.gather``, but cancels the other runs once one fails."""
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        # collect the cancelled siblings so their errors are not left unretrieved
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def _valid(items: Any) -> List[Dict[str, Any]]:
    """Dataset items that are objects and not Apify error markers."""
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict) and not item.get("error")]


def _first_valid(items: Any) -> Optional[Dict[str, Any]]:
    valid = _valid(items)
    return valid[0] if valid else None
