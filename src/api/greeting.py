"""Greeting endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from opentelemetry.trace import Tracer

from src.api.dependencies import get_request_tracer

router = APIRouter()

GREETING = "Hello, world!"
HANDLER_SPAN_NAME = "greeting"


@router.get("/", response_class=PlainTextResponse)
async def greeting(tracer: Annotated[Tracer, Depends(get_request_tracer)]) -> str:
    """Return the static greeting inside a handler span."""
    with tracer.start_as_current_span(HANDLER_SPAN_NAME) as span:
        span.set_attribute("level", "INFO")
        return GREETING
