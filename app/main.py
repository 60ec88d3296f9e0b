"""FastAPI app exposing the rule engine and its content helpers."""

from __future__ import annotations

import logging
import os
import re
import sys
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import condition_eval
from app.audit import stamp_audit
from app.auth import JwtAuthMiddleware, current_actor
from app.compression import InvalidBase64Error, InvalidGzipError, compress, decompress
from app.html_content import convert_text_to_html, prepare_email_content
from flowkit.dynamic_value import to_value
from flowkit.value_path import MISSING, get_node_by_path
from redirection import redirection_name, redirection_target_step
from redirection_plan import plan_redirection

LOG_LEVEL = os.getenv("FLOWKIT_LOG_LEVEL", "INFO").strip().upper() or "INFO"
AUTH_URL = os.getenv("FLOWKIT_AUTH_URL", "").strip()
AUTH_AUD = os.getenv("FLOWKIT_JWT_AUD", "").strip() or None

app = FastAPI(title="flowkit rules")
logger = logging.getLogger("flowkit.http")
logging.basicConfig(level=LOG_LEVEL)
_LOCAL_CORS_REGEX = re.compile(r"^http://(localhost|127\.0\.0\.1):\d+$")
_CORS_ORIGINS = {
    origin.strip().rstrip("/")
    for origin in os.getenv("FLOWKIT_CORS_ORIGINS", "").split(",")
    if origin.strip()
}


@app.middleware("http")
async def local_cors_fallback_middleware(request: Request, call_next):
    origin = request.headers.get("origin")
    if request.method == "OPTIONS":
        response = JSONResponse({}, status_code=200)
    else:
        response = await call_next(request)
    normalized_origin = origin.rstrip("/") if isinstance(origin, str) else origin
    if normalized_origin and (normalized_origin in _CORS_ORIGINS or _LOCAL_CORS_REGEX.match(normalized_origin)):
        response.headers.setdefault("Access-Control-Allow-Origin", origin)
        response.headers.setdefault("Access-Control-Allow-Credentials", "true")
        response.headers.setdefault("Access-Control-Allow-Headers", "*")
        response.headers.setdefault("Access-Control-Allow-Methods", "*")
        response.headers.setdefault("Vary", "Origin")
    return response


if AUTH_URL:
    app.add_middleware(JwtAuthMiddleware, auth_url=AUTH_URL, audience=AUTH_AUD)


def _error_response(code: str, message: str, path: str | None = None, detail: dict | None = None, status: int = 400) -> JSONResponse:
    body = {
        "ok": False,
        "errors": [{"code": code, "message": message, "path": path, "detail": detail}],
        "warnings": [],
    }
    return JSONResponse(jsonable_encoder(body), status_code=status)


def _ok_response(payload: dict, warnings: list | None = None, status: int = 200) -> JSONResponse:
    body = {"ok": True, **payload, "errors": [], "warnings": warnings or []}
    return JSONResponse(jsonable_encoder(body), status_code=status)


async def _json_body(request: Request) -> dict | JSONResponse:
    try:
        body = await request.json()
    except ValueError:
        return _error_response("REQUEST_INVALID", "Body must be JSON", "$")
    if not isinstance(body, dict):
        return _error_response("REQUEST_INVALID", "Body must be object", "$")
    return body


def _data_resolver(data: Any) -> condition_eval.ValueResolver:
    steps = data if isinstance(data, dict) else {}

    def _resolve(field_ref: str, step_ref: str) -> str | None:
        step = steps.get(step_ref)
        if not isinstance(step, dict) or step.get(field_ref) is None:
            return None
        value = step[field_ref]
        return value if isinstance(value, str) else to_value(value).to_text()

    return _resolve


@app.get("/health")
async def health() -> dict:
    return {"ok": True}


@app.post("/conditions/evaluate")
async def conditions_evaluate(request: Request) -> JSONResponse:
    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body
    result = condition_eval.evaluate_all_conditions(body.get("conditions"), _data_resolver(body.get("data")))
    return _ok_response({"result": result})


@app.post("/values/lookup")
async def values_lookup(request: Request) -> JSONResponse:
    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body
    path = body.get("path")
    if not isinstance(path, str) or not path.strip():
        return _error_response("REQUEST_INVALID", "path must be non-empty string", "$.path")
    node = get_node_by_path(body.get("document"), path)
    if node is MISSING:
        return _ok_response({"found": False, "value": None, "text": None})
    text = None if node is None else to_value(node).to_text()
    return _ok_response({"found": True, "value": node, "text": text})


@app.post("/redirections/resolve")
async def redirections_resolve(request: Request) -> JSONResponse:
    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body
    redirection = body.get("redirection")
    return _ok_response(
        {
            "name": redirection_name(redirection),
            "target_step": redirection_target_step(redirection),
        }
    )


@app.post("/redirections/plan")
async def redirections_plan(request: Request) -> JSONResponse:
    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body
    result = plan_redirection(body.get("redirections"), _data_resolver(body.get("data")))
    status = 200 if result["ok"] else 400
    return JSONResponse(jsonable_encoder(result), status_code=status)


@app.post("/content/html")
async def content_html(request: Request) -> JSONResponse:
    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body
    text = body.get("text")
    if text is not None and not isinstance(text, str):
        return _error_response("REQUEST_INVALID", "text must be string", "$.text")
    template = body.get("template")
    if template:
        html = prepare_email_content(text, template)
    else:
        html = convert_text_to_html(text)
    return _ok_response({"html": html})


@app.post("/content/compress")
async def content_compress(request: Request) -> JSONResponse:
    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body
    text = body.get("text")
    if not isinstance(text, str):
        return _error_response("REQUEST_INVALID", "text must be string", "$.text")
    return _ok_response({"data": compress(text)})


@app.post("/content/decompress")
async def content_decompress(request: Request) -> JSONResponse:
    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body
    data = body.get("data")
    if not isinstance(data, str):
        return _error_response("REQUEST_INVALID", "data must be string", "$.data")
    try:
        text = decompress(data)
    except InvalidBase64Error as exc:
        return _error_response("COMPRESSION_INVALID_BASE64", str(exc), "$.data")
    except InvalidGzipError as exc:
        return _error_response("COMPRESSION_INVALID_GZIP", str(exc), "$.data")
    return _ok_response({"text": text})


@app.get("/me")
async def me(request: Request) -> JSONResponse:
    return _ok_response({"actor": current_actor(request)})


@app.post("/records/audit")
async def records_audit(request: Request) -> JSONResponse:
    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body
    record = body.get("record")
    if record is not None and not isinstance(record, dict):
        return _error_response("REQUEST_INVALID", "record must be object", "$.record")
    stamped = stamp_audit(record, current_actor(request), record_id=body.get("record_id"))
    return _ok_response({"record": stamped})
