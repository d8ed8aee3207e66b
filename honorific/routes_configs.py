"""Routes for sharing activity configs as JSON and restoring the defaults."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from honorific.config import Config
from titlecore.exporter import export_activity_config, import_activity_config

router = APIRouter(prefix="/configs", tags=["configs"])


def _config(request: Request) -> Config:
    return request.app.state.config


# ---------------------------------------------------------------------------
# GET /configs/{name}/export — download a profile as JSON
# ---------------------------------------------------------------------------

@router.get("/{name}/export")
def export_config_endpoint(request: Request, name: str):
    config = _config(request)
    match = config.with_lock(
        lambda: next((c.clone() for c in config.activity_configs if c.name == name), None)
    )
    if match is None:
        raise HTTPException(status_code=404, detail=f"Activity config '{name}' not found")

    return Response(
        content=export_activity_config(match),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{name}.json"'},
    )


# ---------------------------------------------------------------------------
# POST /configs/import — append a shared profile
# ---------------------------------------------------------------------------

@router.post("/import")
async def import_config_endpoint(request: Request):
    body = await request.body()
    try:
        imported = import_activity_config(body.decode("utf-8", errors="replace"))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    config = _config(request)

    def _append() -> int:
        config.activity_configs.append(imported)
        config.save()
        return len(config.activity_configs)

    count = config.with_lock(_append)
    return JSONResponse({"imported": imported.name, "total_configs": count}, status_code=201)


# ---------------------------------------------------------------------------
# POST /configs/recreate-defaults
# ---------------------------------------------------------------------------

@router.post("/recreate-defaults")
def recreate_defaults_endpoint(request: Request):
    config = _config(request)

    def _recreate() -> list[str]:
        config.recreate_defaults()
        config.save()
        return [c.name for c in config.activity_configs]

    return JSONResponse({"configs": config.with_lock(_recreate)})
