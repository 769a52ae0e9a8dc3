"""FastAPI dependencies resolving the per-process services from app.state."""

import httpx
from fastapi import Request

from prompt_studio.config import Config
from prompt_studio.key_manager import KeyManager


def get_key_manager(request: Request) -> KeyManager:
    return request.app.state.key_manager


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_config(request: Request) -> Config:
    return request.app.state.config
