from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from typing import Dict, Iterable, List, Tuple

import httpx
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

BASE_URL = os.getenv("DINING_MENU_URL", "https://rdeapps.stanford.edu/dininghallmenu/Menu.aspx")
HTTP_TIMEOUT = float(os.getenv("DINING_HTTP_TIMEOUT", "60"))
USER_AGENT = os.getenv("DINING_USER_AGENT", "StanfordDiningMCP/1.0")

MEAL_TYPES: Tuple[str, ...] = ("Breakfast", "Lunch", "Dinner", "Brunch")

# ASP.NET renders server controls inside the master page under this prefix
CONTROL_PREFIX = "ctl00$MainContent$"

LOCATIONS_SELECT = "#MainContent_lstLocations"
DATES_SELECT = "#MainContent_lstDay"
MENU_ITEM_SELECTOR = "li.clsMenuItem"
ITEM_NAME_SELECTOR = ".clsLabel_Name"

# class marker -> MenuItem flag
DIETARY_MARKERS: Dict[str, str] = {
    "clsGF_Row": "gluten_free",
    "clsVGN_Row": "vegan",
    "clsV_Row": "vegetarian",
    "clsHALAL_Row": "halal",
    "clsKOSHER_Row": "kosher",
}


class DiningError(Exception):
    pass


class UpstreamUnavailable(DiningError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidArgument(DiningError, ValueError):
    pass


@dataclass(frozen=True)
class PageTokens:
    view_state: str
    view_state_generator: str
    event_validation: str
    cookie: str


@dataclass(frozen=True)
class DiningOption:
    value: str
    label: str


@dataclass
class DiningOptions:
    locations: List[DiningOption]
    dates: List[DiningOption]
    meal_types: List[str] = field(default_factory=lambda: list(MEAL_TYPES))


@dataclass(frozen=True)
class MenuItem:
    name: str
    gluten_free: bool = False
    vegetarian: bool = False
    vegan: bool = False
    kosher: bool = False
    halal: bool = False


def make_client() -> httpx.AsyncClient:
    headers = {"User-Agent": USER_AGENT}
    return httpx.AsyncClient(follow_redirects=True, timeout=HTTP_TIMEOUT, headers=headers)


def validate_meal_type(meal_type: str) -> str:
    if meal_type not in MEAL_TYPES:
        raise InvalidArgument(
            f"Invalid meal_type {meal_type!r}; expected one of {', '.join(MEAL_TYPES)}"
        )
    return meal_type


def parse_cookie_header(set_cookie_values: Iterable[str]) -> str:
    """Reduce Set-Cookie headers to a single Cookie header value (name=value pairs only)."""
    pairs = [value.split(";", 1)[0].strip() for value in set_cookie_values]
    return "; ".join(pair for pair in pairs if pair)


def _hidden_value(soup: BeautifulSoup, name: str) -> str:
    element = soup.select_one(f'input[name="{name}"]')
    if element is None:
        return ""
    return element.get("value") or ""


def extract_tokens(html: str, cookie: str = "") -> PageTokens:
    soup = BeautifulSoup(html, "html.parser")
    return PageTokens(
        view_state=_hidden_value(soup, "__VIEWSTATE"),
        view_state_generator=_hidden_value(soup, "__VIEWSTATEGENERATOR"),
        event_validation=_hidden_value(soup, "__EVENTVALIDATION"),
        cookie=cookie,
    )


def _select_options(soup: BeautifulSoup, select_id: str) -> List[DiningOption]:
    options: List[DiningOption] = []
    for option in soup.select(f"{select_id} option"):
        value = option.get("value")
        if not value:
            continue
        options.append(DiningOption(value=value, label=option.get_text().strip()))
    return options


def extract_options(html: str) -> DiningOptions:
    soup = BeautifulSoup(html, "html.parser")
    return DiningOptions(
        locations=_select_options(soup, LOCATIONS_SELECT),
        dates=_select_options(soup, DATES_SELECT),
    )


def extract_items(html: str) -> List[MenuItem]:
    """
    Parse the postback response into menu items, in document order.

    Dietary flags are only exposed upstream as CSS classes on the item row, so
    each flag is a substring test of DIETARY_MARKERS against the class string.
    """
    soup = BeautifulSoup(html, "html.parser")
    items: List[MenuItem] = []
    for row in soup.select(MENU_ITEM_SELECTOR):
        label = row.select_one(ITEM_NAME_SELECTOR)
        name = label.get_text().strip() if label else ""
        if not name:
            continue
        classes = " ".join(row.get("class") or [])
        flags = {flag: marker in classes for marker, flag in DIETARY_MARKERS.items()}
        items.append(MenuItem(name=name, **flags))
    return items


def build_query_form(location: str, date: str, meal_type: str, tokens: PageTokens) -> Dict[str, str]:
    return {
        "__EVENTTARGET": "",
        "__EVENTARGUMENT": "",
        "__VIEWSTATE": tokens.view_state,
        "__VIEWSTATEGENERATOR": tokens.view_state_generator,
        "__EVENTVALIDATION": tokens.event_validation,
        CONTROL_PREFIX + "lstLocations": location,
        CONTROL_PREFIX + "lstDay": date,
        CONTROL_PREFIX + "lstMealType": meal_type,
        # the postback only applies the selections when the Refresh button is the trigger
        CONTROL_PREFIX + "btnRefresh": "Refresh",
    }


def _check_response(resp: httpx.Response, action: str) -> None:
    try:
        resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise UpstreamUnavailable(
            f"{action}: {resp.status_code}", status_code=resp.status_code
        ) from exc


async def _load_page(client: httpx.AsyncClient) -> Tuple[PageTokens, str]:
    try:
        resp = await client.get(BASE_URL)
    except httpx.HTTPError as exc:
        raise UpstreamUnavailable(f"Failed to fetch dining page: {exc}") from exc
    _check_response(resp, "Failed to fetch dining page")

    cookie = parse_cookie_header(resp.headers.get_list("set-cookie"))
    tokens = extract_tokens(resp.text, cookie)
    logger.debug(
        "Acquired page tokens (viewstate=%d chars, cookie=%s)",
        len(tokens.view_state),
        "yes" if cookie else "no",
    )
    return tokens, resp.text


async def fetch_tokens(client: httpx.AsyncClient) -> PageTokens:
    tokens, _ = await _load_page(client)
    return tokens


async def fetch_options(client: httpx.AsyncClient) -> DiningOptions:
    # tokens and option lists come from the same initial GET
    _, html = await _load_page(client)
    options = extract_options(html)
    logger.info("Found %d locations and %d dates", len(options.locations), len(options.dates))
    return options


async def submit_query(
    client: httpx.AsyncClient,
    location: str,
    date: str,
    meal_type: str,
    tokens: PageTokens,
) -> str:
    form = build_query_form(location, date, meal_type, tokens)
    headers = {"Content-Type": "application/x-www-form-urlencoded"}
    if tokens.cookie:
        headers["Cookie"] = tokens.cookie
    try:
        resp = await client.post(BASE_URL, data=form, headers=headers)
    except httpx.HTTPError as exc:
        raise UpstreamUnavailable(f"POST failed: {exc}") from exc
    _check_response(resp, "POST failed")
    return resp.text


async def get_menu(client: httpx.AsyncClient, location: str, date: str, meal_type: str) -> List[MenuItem]:
    validate_meal_type(meal_type)
    tokens = await fetch_tokens(client)
    html = await submit_query(client, location, date, meal_type, tokens)
    items = extract_items(html)
    logger.info("Menu for %s on %s (%s): %d items", location, date, meal_type, len(items))
    return items


def _badges(item: MenuItem) -> List[str]:
    badges: List[str] = []
    if item.vegan:
        badges.append("Vegan")
    elif item.vegetarian:
        badges.append("V")
    if item.gluten_free:
        badges.append("GF")
    if item.kosher:
        badges.append("Kosher")
    if item.halal:
        badges.append("Halal")
    return badges


def format_menu(location: str, date: str, meal_type: str, items: List[MenuItem]) -> str:
    if not items:
        return (
            f"No menu found for **{location}** on {date} ({meal_type}).\n"
            "The dining hall may be closed or this meal may not be served."
        )

    lines = [f"## {location}", f"**{meal_type}** — {date}\n"]
    for item in items:
        badges = _badges(item)
        badge_str = f" [{', '.join(badges)}]" if badges else ""
        lines.append(f"- {item.name}{badge_str}")
    return "\n".join(lines)


def format_options(options: DiningOptions) -> str:
    lines = [
        "## Stanford Dining Options\n",
        "### Dining Halls",
        *[f"- **{loc.label}** (value: `{loc.value}`)" for loc in options.locations],
        "",
        "### Available Dates",
        *[f"- {day.label} (value: `{day.value}`)" for day in options.dates],
        "",
        "### Meal Types",
        *[f"- {meal}" for meal in options.meal_types],
        "",
        "Use `get_dining_menu` with the **value** strings above.",
    ]
    return "\n".join(lines)
