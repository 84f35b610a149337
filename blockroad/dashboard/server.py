from __future__ import annotations

import asyncio
import time

from aiohttp import web

from blockroad.data.snapshot_store import SnapshotStore
from blockroad.infra.log import get_logger
from blockroad.road import grid_to_json, road_stats

HTML = """<!doctype html><html><head><meta charset='utf-8'><title>Block Road</title>
<style>
body{font-family:system-ui;background:#060b16;color:#dbe4ff;padding:16px}
.road{display:flex;overflow-x:auto;margin-bottom:16px}.col{display:flex;flex-direction:column}
.c{width:22px;height:22px;border:1px solid #1c2640;font-size:11px;display:flex;align-items:center;justify-content:center}
.ODD{background:#e5484d}.EVEN{background:#12a594}.BIG{background:#f76b15}.SMALL{background:#3e63dd}
</style></head>
<body>
<h2>Block Road</h2>
<div id='status'>loading...</div>
<h3>Trend</h3><div id='trend' class='road'></div>
<h3>Bead road</h3><div id='bead' class='road'></div>
<pre id='blocks'></pre>
<script>
function draw(id,grid){
  const el=document.getElementById(id);el.innerHTML='';
  for(const col of grid){
    const c=document.createElement('div');c.className='col';
    for(const cell of col){
      const d=document.createElement('div');d.className='c '+(cell.type||'');
      d.textContent=cell.type?cell.value:'';c.appendChild(d);
    }
    el.appendChild(c);
  }
  el.scrollLeft=el.scrollWidth;
}
async function tick(){
  try{
    const r=await fetch('/api',{cache:'no-store'});
    const j=await r.json();
    const s=j.status||{};
    document.getElementById('status').textContent=
      `${s.state} interval=${s.interval} top=${s.top} head=${s.head}`+(s.error?` error: ${s.error}`:'');
    const roads=j.roads||{};
    draw('trend',roads['trend:parity']||[]);
    draw('bead',roads['bead:size']||[]);
    document.getElementById('blocks').textContent=
      (j.blocks||[]).slice(0,20).map(b=>`${b.height} ${b.hash} ${b.resultValue} ${b.type} ${b.timestamp}`).join('\\n');
  }catch(e){document.getElementById('status').textContent='dashboard error: '+e;}
}
setInterval(tick,2000);tick();
</script>
</body></html>"""


def _ok(data=None, **extra) -> web.Response:
    return web.json_response({"success": True, "data": data, **extra}, headers={"Cache-Control": "no-store"})


def _fail(message: str, status: int = 400) -> web.Response:
    return web.json_response({"success": False, "error": message}, status=status)


async def _json_body(req: web.Request) -> dict:
    try:
        body = await req.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def build_app(*, engine=None, store: SnapshotStore | None = None) -> web.Application:
    """Dashboard routes over a live engine, or read-only over a snapshot store."""
    if engine is None and store is None:
        raise ValueError("dashboard needs an engine or a snapshot store")

    async def handle_html(_req: web.Request) -> web.Response:
        return web.Response(text=HTML, content_type="text/html")

    async def handle_health(_req: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "timestamp": int(time.time() * 1000)})

    async def handle_api(_req: web.Request) -> web.Response:
        payload = engine.snapshot(limit=60) if engine is not None else store.read()
        return web.json_response(payload, headers={"Cache-Control": "no-store"})

    async def handle_blocks(req: web.Request) -> web.Response:
        try:
            limit = int(req.query.get("limit", "1000"))
        except ValueError:
            return _fail("limit must be an integer")
        if limit < 0:
            return _fail("limit must not be negative")
        if engine is None:
            rows = store.read().get("blocks", [])[:limit]
        else:
            rows = [b.to_dict() for b in engine.blocks()[:limit]]
        return _ok(rows, count=len(rows))

    async def handle_stats(_req: web.Request) -> web.Response:
        if engine is None:
            snap = store.read()
            return _ok({**snap.get("stats", {}), "status": snap.get("status", {})})
        return _ok({**road_stats(engine.blocks()), "status": engine.status()})

    async def handle_roads(req: web.Request) -> web.Response:
        view = req.query.get("view", "trend")
        mode = req.query.get("mode", "parity")
        if engine is None:
            grid = store.read().get("roads", {}).get(f"{view}:{mode}")
            if grid is None:
                return _fail(f"unknown road {view}:{mode}")
            return _ok(grid, view=view, mode=mode)
        try:
            grid = engine.grid(view, mode)
        except ValueError as exc:
            return _fail(str(exc))
        return _ok(grid_to_json(grid), view=view, mode=mode)

    async def handle_interval(req: web.Request) -> web.Response:
        body = await _json_body(req)
        try:
            applied = await engine.set_interval(int(body.get("interval", 0)))
        except (TypeError, ValueError) as exc:
            return _fail(str(exc))
        if not applied and engine.error:
            return _fail(engine.error, status=502)
        return _ok(engine.status())

    async def handle_search(req: web.Request) -> web.Response:
        body = await _json_body(req)
        applied = await engine.set_query(str(body.get("query", "") or ""))
        if not applied and engine.error:
            return _fail(engine.error, status=502)
        rows = [b.to_dict() for b in engine.blocks()]
        return _ok(rows, count=len(rows), query=engine.query)

    async def handle_refresh(_req: web.Request) -> web.Response:
        applied = await engine.refresh()
        if not applied and engine.error:
            return _fail(engine.error, status=502)
        return _ok(engine.status())

    app = web.Application()
    app.router.add_get("/", handle_html)
    app.router.add_get("/health", handle_health)
    app.router.add_get("/api", handle_api)
    app.router.add_get("/api/blocks", handle_blocks)
    app.router.add_get("/api/stats", handle_stats)
    app.router.add_get("/api/roads", handle_roads)
    if engine is not None:
        app.router.add_post("/api/interval", handle_interval)
        app.router.add_post("/api/search", handle_search)
        app.router.add_post("/api/refresh", handle_refresh)
    return app


async def run_dashboard(
    *,
    port: int,
    log_level: str = "INFO",
    engine=None,
    data_dir: str | None = None,
) -> None:
    log = get_logger("blockroad.dashboard", log_level)
    store = SnapshotStore(data_dir) if engine is None and data_dir else None
    app = build_app(engine=engine, store=store)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)
    await site.start()
    log.info("dashboard running on :%s mode=%s", port, "embedded" if engine is not None else "external")

    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await runner.cleanup()
