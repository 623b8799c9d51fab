# main.py
import logging
import os

from fastapi import FastAPI
from fastapi.responses import HTMLResponse

from .server import mcp


LANDING_PAGE = """<!doctype html>
<html>
  <head><title>Stanford Dining MCP Server</title></head>
  <body style="font-family: monospace; padding: 2rem">
    <h1>Stanford Dining MCP Server</h1>
    <p>MCP endpoint: <code>/api/mcp</code></p>
    <h2>Tools</h2>
    <ul>
      <li><code>get_dining_options</code> &mdash; list dining halls, dates, and meal types</li>
      <li><code>get_dining_menu</code> &mdash; fetch the menu for a hall / date / meal</li>
    </ul>
  </body>
</html>
"""

mcp_app = mcp.http_app(path="/mcp")

# le lifespan du transport MCP doit tourner avec l'app FastAPI
app = FastAPI(lifespan=mcp_app.lifespan)


@app.get("/", response_class=HTMLResponse)
def home():
    return LANDING_PAGE


@app.get("/health")
def health():
    return {"status": "ok"}


app.mount("/api", mcp_app)


def main() -> None:
    import uvicorn

    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    uvicorn.run(app, host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))


if __name__ == "__main__":
    main()
