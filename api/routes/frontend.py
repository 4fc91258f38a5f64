"""
Frontend HTML routes.

Serves the Jinja2 pages of the CropKeeper UI. Every list page reads the same
filter query parameters as its JSON endpoint, carries an add/edit form and
deletes through a confirmation step.

Routes:
    GET  /                          → dashboard.html (counts, recent records)
    GET  /{kind}                    → {kind}.html, kind in farms|crops|tasks|expenses
                                      ?edit=<id> pre-fills the form,
                                      ?delete=<id> shows the confirmation box
    POST /{kind}                    → create (no ``id`` field) or update
    POST /{kind}/{record_id}/delete → delete after confirmation
    POST /tasks/{task_id}/toggle    → flip a task's completed flag
    GET  /weather                   → weather.html (?farm_id= selects the farm)

A failed submission re-renders the page with the submitted values and one
message per field (HTTP 422). A failing record store renders the page with an
error banner instead of a traceback.
"""

import logging
from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from api.database import get_services
from api.listing import build_filter_spec, build_sort_spec
from pipeline.schema import get_schema
from pipeline.specs import SortSpec
from store.base import RecordNotFoundError, StoreError
from store.services import FarmInUseError, FormValidationError, Services, dashboard_summary
from utils.config import KnownValues
from utils.validation import FormState
from utils.weather import get_weather

logger = logging.getLogger(__name__)

router = APIRouter(tags=["frontend"])

PAGE_SIZE = 25

# Templates instance is set by create_app() after mounting.
_templates: Jinja2Templates | None = None

_TITLES = {
    "farms": "Farm",
    "crops": "Crop",
    "tasks": "Task",
    "expenses": "Expense",
}

# Query parameter -> FilterSpec equals key, per kind
_EXACT_PARAMS = {
    "farms": {},
    "crops": {"status": "status"},
    "tasks": {"status": "task_status", "priority": "priority"},
    "expenses": {"category": "category"},
}

_NOTICES = {
    "created": "{title} added",
    "updated": "{title} updated",
    "deleted": "{title} deleted",
    "toggled": "Task updated",
}

STORE_UNAVAILABLE = "The record store is unavailable. Your changes were not saved."


def set_templates(t: Jinja2Templates) -> None:
    global _templates
    _templates = t


def _tmpl() -> Jinja2Templates:
    if _templates is None:
        raise RuntimeError("Templates not initialised; call set_templates() first")
    return _templates


# Unknown paths under these never get the HTML not-found page
_NON_PAGE_PREFIXES = ("/api/", "/static/", "/health", "/docs", "/redoc", "/openapi.json")


def serves_page(path: str) -> bool:
    """True when an unknown *path* should get the HTML not-found page."""
    if _templates is None or path == "/api":
        return False
    return not path.startswith(_NON_PAGE_PREFIXES)


def render_not_found(request: Request) -> HTMLResponse:
    return _tmpl().TemplateResponse(request, "not_found.html",
                                    {"path": request.url.path}, status_code=404)


def _banner(kind: str, message: str) -> dict[str, str]:
    return {"type": kind, "message": message}


# ── Filters ───────────────────────────────────────────────────────────────────

def _parse_filters(request: Request, kind: str) -> dict[str, Any]:
    """Extract filter params from query string into a dict."""
    params = request.query_params
    try:
        page = max(1, int(params.get("page", 1)))
    except ValueError:
        page = 1
    filters: dict[str, Any] = {
        "q":         params.get("q", ""),
        "farm_id":   params.get("farm_id", "all") if kind != "farms" else "all",
        "date_from": params.get("date_from", ""),
        "date_to":   params.get("date_to", ""),
        "sort_by":   params.get("sort_by", ""),
        "sort_dir":  params.get("sort_dir", "asc"),
        "page":      page,
    }
    for param in _EXACT_PARAMS[kind]:
        filters[param] = params.get(param, "all")
    return filters


def _filter_params(filters: dict[str, Any], kind: str) -> dict[str, Any]:
    """Non-default filter values, for building page links."""
    keys = ["q", "farm_id", "date_from", "date_to", *_EXACT_PARAMS[kind]]
    return {k: filters[k] for k in keys if filters.get(k) not in (None, "", "all")}


def _page_url(path: str, params: dict[str, Any]) -> str:
    return f"{path}?{urlencode(params)}" if params else path


def _sort_links(kind: str, filters: dict[str, Any], current: SortSpec | None) -> dict[str, str]:
    """Column header URLs: a click sorts asc, a repeat click sorts desc."""
    base = _filter_params(filters, kind)
    current = current or SortSpec()
    links = {}
    for key in get_schema(kind).sort_keys:
        nxt = current.toggled(key)
        links[key] = _page_url(f"/{kind}", {**base, "sort_by": nxt.key, "sort_dir": nxt.direction})
    return links


def _query_results(kind: str, filters: dict[str, Any],
                   services: Services) -> dict[str, Any]:
    """Run the filtered listing and return template context vars."""
    equals = {
        target: filters[param] for param, target in _EXACT_PARAMS[kind].items()
    }
    spec = build_filter_spec(
        farm_id=filters["farm_id"], q=filters["q"],
        date_from=filters["date_from"], date_to=filters["date_to"], **equals,
    )
    sort = build_sort_spec(filters["sort_by"], filters["sort_dir"])
    page = filters["page"]
    # Pages are counted on the full filtered set; clamp before slicing
    full = services.for_kind(kind).list(spec, sort)
    total_pages = max(1, (full.total + PAGE_SIZE - 1) // PAGE_SIZE)
    page = min(page, total_pages)
    offset = (page - 1) * PAGE_SIZE
    items = full.all_items[offset:offset + PAGE_SIZE]

    base = {**_filter_params(filters, kind)}
    if full.sort is not None and filters["sort_by"]:
        base.update(sort_by=full.sort.key, sort_dir=full.sort.direction)
    return {
        "items":       items,
        "total":       full.total,
        "page":        page,
        "total_pages": total_pages,
        "summary":     full.summary.to_dict() if full.summary is not None else None,
        "sort_by":     full.sort.key if full.sort else None,
        "sort_dir":    full.sort.direction if full.sort else None,
        "sort_links":  _sort_links(kind, filters, full.sort),
        "prev_url":    _page_url(f"/{kind}", {**base, "page": page - 1}) if page > 1 else None,
        "next_url":    (_page_url(f"/{kind}", {**base, "page": page + 1})
                        if page < total_pages else None),
        "export_url":  _page_url("/api/v1/expenses/export", {**base, "fmt": "csv"})
                       if kind == "expenses" else None,
    }


# ── Form helpers ──────────────────────────────────────────────────────────────

def _form_values(kind: str, record: dict[str, Any]) -> dict[str, Any]:
    """Record fields as the form inputs display them."""
    values = dict(record)
    if kind == "farms" and isinstance(values.get("crop_types"), list):
        values["crop_types"] = ", ".join(values["crop_types"])
    return values


async def _submitted(request: Request) -> dict[str, Any]:
    form = await request.form()
    values = {k: v for k, v in form.items() if isinstance(v, str)}
    if not values.get("id"):
        values.pop("id", None)
    return values


def _render_page(
    request: Request,
    kind: str,
    services: Services,
    form: FormState | None = None,
    banner: dict[str, str] | None = None,
    status_code: int = 200,
) -> HTMLResponse:
    """Render a list page, falling back to a banner when the store fails."""
    filters = _parse_filters(request, kind)
    title = _TITLES[kind]
    params = request.query_params
    context: dict[str, Any] = {
        "kind": kind,
        "title": title,
        "filters": filters,
        "known": KnownValues,
        "form": form or FormState(kind),
        "confirm": None,
        "dependents": None,
        "banner": banner,
        "farms": [],
        "items": [],
        "total": 0,
        "page": 1,
        "total_pages": 1,
        "summary": None,
        "sort_by": None,
        "sort_dir": None,
        "sort_links": {},
        "prev_url": None,
        "next_url": None,
        "export_url": None,
    }
    notice = params.get("notice")
    if banner is None and notice in _NOTICES:
        context["banner"] = _banner("success", _NOTICES[notice].format(title=title))

    try:
        context["farms"] = services.farms.options()
        context.update(_query_results(kind, filters, services))
        service = services.for_kind(kind)
        if form is None and params.get("edit"):
            record = service.get(params["edit"])
            context["form"] = FormState(kind, _form_values(kind, record))
        if params.get("delete"):
            context["confirm"] = service.get(params["delete"])
            if kind == "farms":
                owned = services.farms.dependents(context["confirm"]["id"])
                context["dependents"] = {k: len(v) for k, v in owned.items()}
    except RecordNotFoundError as exc:
        context["banner"] = _banner("error", str(exc))
        status_code = 404
    except StoreError as exc:
        logger.error("store failure rendering %s page: %s", kind, exc)
        context["banner"] = _banner("error", STORE_UNAVAILABLE)
        status_code = 503

    return _tmpl().TemplateResponse(request, f"{kind}.html", context, status_code=status_code)


async def _save(request: Request, kind: str, services: Services) -> HTMLResponse:
    """Validate and persist a submitted form; redirect on success."""
    values = await _submitted(request)
    try:
        known = None if kind == "farms" else list(services.farms.farm_lookup())
        form = FormState(kind, values, known_farm_ids=known)
        if not form.submit():
            return _render_page(request, kind, services, form=form, status_code=422)
        service = services.for_kind(kind)
        if form.record_id is not None:
            service.update(form.record_id, form.cleaned())
            notice = "updated"
        else:
            service.create(form.cleaned())
            notice = "created"
    except FormValidationError as exc:
        form = FormState(kind, values)
        form.errors = exc.errors
        return _render_page(request, kind, services, form=form, status_code=422)
    except RecordNotFoundError as exc:
        return _render_page(request, kind, services, form=FormState(kind, values),
                            banner=_banner("error", str(exc)), status_code=404)
    except StoreError as exc:
        logger.error("store failure saving %s: %s", kind, exc)
        return _render_page(request, kind, services, form=FormState(kind, values),
                            banner=_banner("error", STORE_UNAVAILABLE), status_code=503)
    return RedirectResponse(url=f"/{kind}?notice={notice}", status_code=303)


async def _delete(request: Request, kind: str, record_id: str,
                  services: Services) -> HTMLResponse:
    """Delete a record after the confirmation step."""
    try:
        if kind == "farms":
            form = await request.form()
            cascade = str(form.get("cascade", "")).lower() in ("on", "true", "1")
            services.farms.delete(record_id, cascade=cascade)
        else:
            services.for_kind(kind).delete(record_id)
    except FarmInUseError as exc:
        return _render_page(request, kind, services,
                            banner=_banner("error", str(exc)), status_code=409)
    except RecordNotFoundError as exc:
        return _render_page(request, kind, services,
                            banner=_banner("error", str(exc)), status_code=404)
    except StoreError as exc:
        logger.error("store failure deleting %s %s: %s", kind, record_id, exc)
        return _render_page(request, kind, services,
                            banner=_banner("error", STORE_UNAVAILABLE), status_code=503)
    return RedirectResponse(url=f"/{kind}?notice=deleted", status_code=303)


# ── Routes ────────────────────────────────────────────────────────────────────

@router.get("/", response_class=HTMLResponse, include_in_schema=False)
def index(request: Request, services: Services = Depends(get_services)) -> HTMLResponse:
    """Dashboard page."""
    context: dict[str, Any] = {"summary": None, "banner": None}
    status_code = 200
    try:
        context["summary"] = dashboard_summary(services.store)
    except StoreError as exc:
        logger.error("store failure rendering dashboard: %s", exc)
        context["banner"] = _banner("error", STORE_UNAVAILABLE)
        status_code = 503
    return _tmpl().TemplateResponse(request, "dashboard.html", context, status_code=status_code)


@router.get("/farms", response_class=HTMLResponse, include_in_schema=False)
def farms_page(request: Request, services: Services = Depends(get_services)) -> HTMLResponse:
    return _render_page(request, "farms", services)


@router.post("/farms", response_class=HTMLResponse, include_in_schema=False)
async def save_farm(request: Request, services: Services = Depends(get_services)) -> HTMLResponse:
    return await _save(request, "farms", services)


@router.post("/farms/{record_id}/delete", response_class=HTMLResponse, include_in_schema=False)
async def delete_farm(record_id: str, request: Request,
                      services: Services = Depends(get_services)) -> HTMLResponse:
    return await _delete(request, "farms", record_id, services)


@router.get("/crops", response_class=HTMLResponse, include_in_schema=False)
def crops_page(request: Request, services: Services = Depends(get_services)) -> HTMLResponse:
    return _render_page(request, "crops", services)


@router.post("/crops", response_class=HTMLResponse, include_in_schema=False)
async def save_crop(request: Request, services: Services = Depends(get_services)) -> HTMLResponse:
    return await _save(request, "crops", services)


@router.post("/crops/{record_id}/delete", response_class=HTMLResponse, include_in_schema=False)
async def delete_crop(record_id: str, request: Request,
                      services: Services = Depends(get_services)) -> HTMLResponse:
    return await _delete(request, "crops", record_id, services)


@router.get("/tasks", response_class=HTMLResponse, include_in_schema=False)
def tasks_page(request: Request, services: Services = Depends(get_services)) -> HTMLResponse:
    return _render_page(request, "tasks", services)


@router.post("/tasks", response_class=HTMLResponse, include_in_schema=False)
async def save_task(request: Request, services: Services = Depends(get_services)) -> HTMLResponse:
    return await _save(request, "tasks", services)


@router.post("/tasks/{record_id}/delete", response_class=HTMLResponse, include_in_schema=False)
async def delete_task(record_id: str, request: Request,
                      services: Services = Depends(get_services)) -> HTMLResponse:
    return await _delete(request, "tasks", record_id, services)


@router.post("/tasks/{task_id}/toggle", response_class=HTMLResponse, include_in_schema=False)
def toggle_task(task_id: str, request: Request,
                services: Services = Depends(get_services)) -> HTMLResponse:
    """Flip a task between pending and completed, then return to the list."""
    try:
        services.tasks.toggle_completed(task_id)
    except RecordNotFoundError as exc:
        return _render_page(request, "tasks", services,
                            banner=_banner("error", str(exc)), status_code=404)
    except StoreError as exc:
        logger.error("store failure toggling task %s: %s", task_id, exc)
        return _render_page(request, "tasks", services,
                            banner=_banner("error", STORE_UNAVAILABLE), status_code=503)
    return RedirectResponse(url="/tasks?notice=toggled", status_code=303)


@router.get("/expenses", response_class=HTMLResponse, include_in_schema=False)
def expenses_page(request: Request, services: Services = Depends(get_services)) -> HTMLResponse:
    return _render_page(request, "expenses", services)


@router.post("/expenses", response_class=HTMLResponse, include_in_schema=False)
async def save_expense(request: Request, services: Services = Depends(get_services)) -> HTMLResponse:
    return await _save(request, "expenses", services)


@router.post("/expenses/{record_id}/delete", response_class=HTMLResponse, include_in_schema=False)
async def delete_expense(record_id: str, request: Request,
                         services: Services = Depends(get_services)) -> HTMLResponse:
    return await _delete(request, "expenses", record_id, services)


@router.get("/weather", response_class=HTMLResponse, include_in_schema=False)
def weather_page(request: Request, services: Services = Depends(get_services)) -> HTMLResponse:
    """Weather page; defaults to the first farm."""
    context: dict[str, Any] = {"farms": [], "selected": None, "report": None, "banner": None}
    status_code = 200
    try:
        farms = services.farms.options()
        context["farms"] = farms
        selected = request.query_params.get("farm_id") or (
            str(farms[0]["id"]) if farms else None
        )
        if selected is not None:
            context["selected"] = str(selected)
            context["report"] = get_weather(services.farms.get(selected))
    except RecordNotFoundError as exc:
        context["banner"] = _banner("error", str(exc))
        status_code = 404
    except StoreError as exc:
        logger.error("store failure rendering weather page: %s", exc)
        context["banner"] = _banner("error", STORE_UNAVAILABLE)
        status_code = 503
    return _tmpl().TemplateResponse(request, "weather.html", context, status_code=status_code)
