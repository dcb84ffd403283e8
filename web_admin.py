"""
Admin web interface for curating builds.

Creates builds and replaces their item sets, either through the JSON endpoints
under /builds or through the HTML pages (index, build view, add and edit
forms) whose forms post to /add-build and /update-build, the latter also
accepting an item image upload.
"""
import json
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, Field

from config import (
    ACTIVITY_TYPES, ADMIN_HOST, ADMIN_PORT, CUSTOM_BUILD_TYPE, DB_NAME, TEMPLATES_DIR, TIER_CHOICES,
    UPLOAD_DIR, UPLOAD_URL_PREFIX, __version__, setup_logging
)
from db_utils import BuildStore, BuildStoreError, NotFound, StorageError, ValidationError
from models import Build, BuildItem
from utils.image_utils import InvalidImageError, save_uploaded_image

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=TEMPLATES_DIR)

# Fields of an item as the edit form exchanges them
EDITABLE_ITEM_FIELDS = {"item_name", "item_description", "item_image"}


class BuildCreate(BaseModel):
    name: str
    description: Optional[str] = None
    type: str
    tier: Optional[int] = None


class ItemPayload(BaseModel):
    item_name: Optional[str] = None
    item_description: Optional[str] = None
    item_image: Optional[str] = None


class BuildReplace(BuildCreate):
    items: Dict[str, List[ItemPayload]] = Field(default_factory=dict)


def http_error(error: BuildStoreError) -> HTTPException:
    if isinstance(error, NotFound):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=str(error))
    return HTTPException(status_code=500, detail="Storage error while processing the build.")


def parse_tier(raw_tier: Optional[str]) -> Optional[int]:
    """Form fields arrive as text; a blank tier means no tier."""
    if raw_tier is None or not raw_tier.strip():
        return None
    try:
        return int(raw_tier)
    except ValueError as e:
        raise ValidationError(f"tier must be a whole number, got '{raw_tier}'") from e


def normalize_items_payload(raw_items: Any) -> Dict[str, list]:
    """
    Turns the loosely shaped `items` form value into {slot: [item, ...]}.

    The edit form posts JSON text; a slot may hold a single object or a list of
    objects, and empty slots are dropped. Anything that is not an object keyed by
    slot is rejected.
    """
    if raw_items is None:
        return {}
    if isinstance(raw_items, str):
        if not raw_items.strip():
            return {}
        try:
            raw_items = json.loads(raw_items)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid items data: {e}") from e

    if not isinstance(raw_items, dict):
        raise ValidationError("items must be an object keyed by slot")

    normalized = {}
    for slot, slot_items in raw_items.items():
        if not slot_items:
            continue
        normalized[slot] = slot_items if isinstance(slot_items, list) else [slot_items]
    return normalized


def apply_uploaded_image(item_set: Dict[str, list], image_path: str):
    """Items without their own image get the freshly uploaded one."""
    for slot_items in item_set.values():
        for item in slot_items:
            if isinstance(item, dict) and not item.get("item_image"):
                item["item_image"] = image_path


def items_to_form_json(items: Dict[str, List[BuildItem]]) -> str:
    """Current items in the shape the edit form posts back, primary item first."""
    return json.dumps(
        {slot: [item.model_dump(include=EDITABLE_ITEM_FIELDS) for item in slot_items]
         for slot, slot_items in items.items()},
        ensure_ascii=False,
        indent=2,
    )


def build_type_choices(build: Optional[Build] = None) -> Dict[str, str]:
    choices = {**ACTIVITY_TYPES, CUSTOM_BUILD_TYPE: "Custom"}
    if build is not None and build.type not in choices:
        choices[build.type] = build.type
    return choices


def get_store(request: Request) -> BuildStore:
    return request.app.state.store


def create_app(store: Optional[BuildStore] = None, upload_dir: str = UPLOAD_DIR) -> FastAPI:
    store = store or BuildStore(DB_NAME)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        os.makedirs(upload_dir, exist_ok=True)
        await store.initialize()
        logger.info(f"Admin interface ready, uploads stored in {upload_dir}.")
        yield

    app = FastAPI(
        title="Build Admin",
        description="Create builds and manage their items",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.upload_dir = upload_dir
    app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=upload_dir, check_dir=False), name="uploads")

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request, store: BuildStore = Depends(get_store)):
        try:
            builds = await store.list_builds(newest_first=True)
        except BuildStoreError as e:
            raise http_error(e) from e
        return templates.TemplateResponse(
            request, "index.html", {"builds": builds, "activity_types": build_type_choices()}
        )

    @app.get("/build/{build_id}", response_class=HTMLResponse)
    async def build_page(build_id: int, request: Request, store: BuildStore = Depends(get_store)):
        try:
            build, items = await store.get_build_with_items(build_id)
        except BuildStoreError as e:
            raise http_error(e) from e
        return templates.TemplateResponse(
            request, "build.html", {"build": build, "items": items, "activity_types": build_type_choices(build)}
        )

    @app.get("/add-build", response_class=HTMLResponse)
    async def add_build_page(request: Request):
        return templates.TemplateResponse(
            request, "add_build.html",
            {"build": None, "activity_types": build_type_choices(), "tier_choices": TIER_CHOICES},
        )

    @app.get("/edit-build/{build_id}", response_class=HTMLResponse)
    async def edit_build_page(build_id: int, request: Request, store: BuildStore = Depends(get_store)):
        try:
            build, items = await store.get_build_with_items(build_id)
        except BuildStoreError as e:
            raise http_error(e) from e
        return templates.TemplateResponse(
            request, "edit_build.html",
            {
                "build": build,
                "items_json": items_to_form_json(items),
                "activity_types": build_type_choices(build),
                "tier_choices": TIER_CHOICES,
            },
        )

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    @app.get("/builds")
    async def list_builds(type: Optional[str] = None, tier: Optional[int] = None,
                          store: BuildStore = Depends(get_store)):
        try:
            return await store.list_builds(type=type, tier=tier, newest_first=True)
        except BuildStoreError as e:
            raise http_error(e) from e

    @app.post("/builds", status_code=201)
    async def create_build(build_data: BuildCreate, store: BuildStore = Depends(get_store)):
        try:
            build_id = await store.create_build(
                build_data.name, build_data.description, build_data.type, build_data.tier
            )
            return await store.get_build(build_id)
        except BuildStoreError as e:
            raise http_error(e) from e

    @app.get("/builds/{build_id}")
    async def get_build(build_id: int, store: BuildStore = Depends(get_store)):
        try:
            build, items = await store.get_build_with_items(build_id)
        except BuildStoreError as e:
            raise http_error(e) from e
        return {"build": build, "items": items}

    @app.put("/builds/{build_id}")
    async def replace_build(build_id: int, build_data: BuildReplace, store: BuildStore = Depends(get_store)):
        fields = build_data.model_dump(exclude={"items"})
        item_set = {
            slot: [item.model_dump() for item in slot_items]
            for slot, slot_items in build_data.items.items()
        }
        try:
            await store.replace_build(build_id, fields, item_set)
            build, items = await store.get_build_with_items(build_id)
        except BuildStoreError as e:
            raise http_error(e) from e
        return {"build": build, "items": items}

    @app.post("/add-build")
    async def add_build_form(
        name: str = Form(""),
        description: Optional[str] = Form(None),
        type: str = Form(""),
        tier: Optional[str] = Form(None),
        store: BuildStore = Depends(get_store),
    ):
        try:
            build_id = await store.create_build(name, description or None, type, parse_tier(tier))
        except BuildStoreError as e:
            raise http_error(e) from e
        return RedirectResponse(f"/edit-build/{build_id}", status_code=303)

    @app.post("/update-build/{build_id}")
    async def update_build_form(
        build_id: int,
        name: str = Form(""),
        description: Optional[str] = Form(None),
        type: str = Form(""),
        tier: Optional[str] = Form(None),
        items: Optional[str] = Form(None),
        item_image: Optional[UploadFile] = File(None),
        store: BuildStore = Depends(get_store),
    ):
        stored_path = None
        updated = False
        try:
            fields = {"name": name, "description": description or None, "type": type, "tier": parse_tier(tier)}
            item_set = normalize_items_payload(items)

            if item_image is not None and item_image.filename:
                content = await item_image.read()
                try:
                    file_name = save_uploaded_image(content, item_image.filename, upload_dir)
                except InvalidImageError as e:
                    raise ValidationError(str(e)) from e
                except OSError as e:
                    logger.error(f"Could not store uploaded image: {e}", exc_info=True)
                    raise StorageError(f"Could not store uploaded image: {e}") from e
                stored_path = os.path.join(upload_dir, file_name)
                apply_uploaded_image(item_set, f"{UPLOAD_URL_PREFIX}/{file_name}")

            await store.replace_build(build_id, fields, item_set)
            updated = True
        except BuildStoreError as e:
            logger.warning(f"Update of build {build_id} rejected: {e}")
            raise http_error(e) from e
        finally:
            # An image is only kept when the build that references it was saved
            if not updated and stored_path and os.path.exists(stored_path):
                os.remove(stored_path)

        return RedirectResponse(f"/build/{build_id}", status_code=303)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    setup_logging()
    uvicorn.run(app, host=ADMIN_HOST, port=ADMIN_PORT)
