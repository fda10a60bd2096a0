"""
Public subscription endpoints.

Endpoints (relative to base_path):
- GET  /             - Subscription form
- POST /subscribe    - Subscribe (or unsubscribe with action=unsubscribe)
- POST /unsubscribe  - Unsubscribe
- GET  /confirm      - Confirmation link target
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import HTMLResponse

from src.api.deps import get_client_ip, get_context, get_language, get_ui_strings
from src.api.pages import render_index, render_result
from src.components.backends.models import Action
from src.components.subscription import (
    ConfirmInput,
    PipelineResult,
    PipelineState,
    ResultCode,
    SubscriptionForm,
)
from src.services.context import AppContext

logger = logging.getLogger(__name__)

router = APIRouter()

RETRY_AFTER_SECONDS = "5"


def _parse_action(value: str | None) -> Action:
    if value and value.strip().lower() == Action.UNSUBSCRIBE.value:
        return Action.UNSUBSCRIBE
    return Action.SUBSCRIBE


def _respond(request: Request, ctx: AppContext, result: PipelineResult) -> HTMLResponse:
    lang = get_language(request, ctx)
    html = render_result(get_ui_strings(lang, ctx), result, ctx.rules.base_path, lang)
    response = HTMLResponse(content=html, status_code=result.http_status)
    if result.code is ResultCode.QUEUE_FULL:
        response.headers["Retry-After"] = RETRY_AFTER_SECONDS
    return response


def _submit(
    request: Request,
    ctx: AppContext,
    action: Action,
    email: str,
    csrf_token: str,
    website: str,
    mailing_list: str,
    name: str,
) -> HTMLResponse:
    form = SubscriptionForm(
        email=email,
        action=action,
        csrf_token=csrf_token,
        website=website,
        mailing_list=mailing_list,
        name=name,
        ip=get_client_ip(request),
        lang=get_language(request, ctx),
    )
    return _respond(request, ctx, ctx.service.submit(form))


@router.get("/", response_class=HTMLResponse, summary="Subscription form")
def index(request: Request, ctx: AppContext = Depends(get_context)) -> HTMLResponse:
    lang = get_language(request, ctx)
    csrf_token = ctx.csrf.issue_or_reuse(get_client_ip(request))
    html = render_index(
        get_ui_strings(lang, ctx),
        csrf_token,
        ctx.lists.all(),
        ctx.rules.base_path,
        lang,
    )
    return HTMLResponse(content=html)


@router.post("/subscribe", response_class=HTMLResponse, summary="Request a subscription")
def subscribe(
    request: Request,
    email: str = Form(""),
    csrf_token: str = Form(""),
    website: str = Form(""),
    action: str = Form("subscribe"),
    mailing_list: str = Form(""),
    name: str = Form(""),
    ctx: AppContext = Depends(get_context),
) -> HTMLResponse:
    """Start the double opt-in flow. The action field selects unsubscribe."""
    return _submit(
        request, ctx, _parse_action(action), email, csrf_token, website, mailing_list, name
    )


@router.post("/unsubscribe", response_class=HTMLResponse, summary="Request an unsubscription")
def unsubscribe(
    request: Request,
    email: str = Form(""),
    csrf_token: str = Form(""),
    website: str = Form(""),
    mailing_list: str = Form(""),
    ctx: AppContext = Depends(get_context),
) -> HTMLResponse:
    return _submit(request, ctx, Action.UNSUBSCRIBE, email, csrf_token, website, mailing_list, "")


@router.get("/confirm", response_class=HTMLResponse, summary="Confirm a pending request")
def confirm(
    request: Request,
    token: str = Query(""),
    ctx: AppContext = Depends(get_context),
) -> HTMLResponse:
    if not token.strip():
        result = PipelineResult(code=ResultCode.CONFIRMATION_ERROR, state=PipelineState.FAILED)
        return _respond(request, ctx, result)

    inp = ConfirmInput(token=token.strip(), lang=get_language(request, ctx))
    return _respond(request, ctx, ctx.service.confirm(inp))

