"""Small web service listing the bundled emote assets."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from aiohttp import web

from .catalog import EmoteCatalog

logger = logging.getLogger("emotebot.library")

CATEGORY_LABELS: Dict[str, str] = {
    "emojis": "Emoji",
    "gifs": "GIF",
    "sounds": "Sound",
}

INDEX_HTML = '<a href="library">Library</a><br>\n<a href="palette">Palette</a>'


def _asset_url(path: Path, assets_dir: Path) -> str:
    try:
        relative = path.relative_to(assets_dir)
    except ValueError:
        relative = Path(path.name)
    return "/assets/" + "/".join(relative.parts)


def build_library(catalog: EmoteCatalog, assets_dir: Path) -> List[Dict[str, object]]:
    """Group the catalog by asset directory, in first-seen order."""
    library: List[Dict[str, object]] = []
    by_type: Dict[str, List[Dict[str, str]]] = {}
    for emote in catalog:
        if emote.path is None:
            continue
        type_name = CATEGORY_LABELS.get(emote.category, "")
        entries = by_type.get(type_name)
        if entries is None:
            entries = []
            by_type[type_name] = entries
            library.append({"type_name": type_name, "emotes": entries})
        entries.append({"name": emote.name, "url": _asset_url(emote.path, assets_dir)})
    return library


def create_app(catalog: EmoteCatalog, assets_dir: Path, pages_dir: Optional[Path] = None) -> web.Application:
    app = web.Application()
    pages_dir = pages_dir or Path("pages")

    async def index(_request: web.Request) -> web.Response:
        return web.Response(text=INDEX_HTML, content_type="text/html")

    async def library(_request: web.Request) -> web.Response:
        return web.json_response(build_library(catalog, assets_dir))

    async def palette(_request: web.Request) -> web.StreamResponse:
        page = pages_dir / "palette.html"
        if not page.is_file():
            raise web.HTTPNotFound(text="Palette page not found")
        return web.FileResponse(page)

    app.router.add_get("/", index)
    app.router.add_get("/library", library)
    app.router.add_get("/palette", palette)
    if assets_dir.is_dir():
        app.router.add_static("/assets", assets_dir)
    else:
        logger.warning("Assets directory %s not found; /assets will not be served.", assets_dir)
    return app


async def start_library_server(
    catalog: EmoteCatalog,
    assets_dir: Path,
    pages_dir: Optional[Path],
    host: str,
    port: int,
) -> web.AppRunner:
    runner = web.AppRunner(create_app(catalog, assets_dir, pages_dir))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("Library service listening on %s:%s", host, port)
    return runner


__all__ = ["CATEGORY_LABELS", "build_library", "create_app", "start_library_server"]
