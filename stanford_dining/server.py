# server.py
import logging
import os
from typing import Annotated, Literal

from fastmcp import FastMCP, Context
from pydantic import Field

from . import dining

MealType = Literal["Breakfast", "Lunch", "Dinner", "Brunch"]

# Nom logique du serveur MCP
mcp = FastMCP("StanfordDiningServer")


@mcp.tool(
    name="get_dining_options",
    title="Get Dining Options",
    description="Get available Stanford dining halls, upcoming dates, and meal types.",
)
async def get_dining_options(ctx: Context) -> str:
    await ctx.info("Fetching Stanford dining options")

    async with dining.make_client() as client:
        options = await dining.fetch_options(client)

    return dining.format_options(options)


@mcp.tool(
    name="get_dining_menu",
    title="Get Dining Menu",
    description=(
        "Get the menu for a Stanford dining hall on a specific date and meal. "
        "Call get_dining_options first to see valid location values and available dates."
    ),
)
async def get_dining_menu(
    location: Annotated[
        str,
        Field(description="Dining hall value from get_dining_options, e.g. 'Arrillaga' or 'FlorenceMoore'"),
    ],
    date: Annotated[str, Field(description="Date in M/D/YYYY format, e.g. '2/26/2026'")],
    meal_type: Annotated[MealType, Field(description="Meal type")],
    ctx: Context,
) -> str:
    await ctx.info(f"Fetching {meal_type} menu for {location} on {date}")

    async with dining.make_client() as client:
        items = await dining.get_menu(client, location, date, meal_type)

    return dining.format_menu(location, date, meal_type, items)


def main() -> None:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    # Lance le serveur MCP (stdio)
    mcp.run()


if __name__ == "__main__":
    main()
