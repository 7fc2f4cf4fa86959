"""Procedures the server may call on a connected client."""

import logging
from dataclasses import dataclass
from typing import Any, List

from judging.client.store import ClientStateStore
from judging.rpc.router import ProcedureRouter, log_calls
from judging.schemas import Age, DeviceInfo, Name

logger = logging.getLogger(__name__)


@dataclass
class ClientContext:
    store: ClientStateStore
    channel: Any = None


def on_update_age(age: float, ctx: ClientContext):
    logger.info(f"Server told me to update my age to {age}")
    current = ctx.store.get_client_state()
    # One update, so both fields change in a single notification
    ctx.store.update_client_state(
        server_call_count=current.server_call_count + 1,
        last_update_age=age,
    )
    return f"Age updated to {age}"


def get_name(name: str, ctx: ClientContext):
    return f"Hello, {name}!"


def on_device_list_update(devices: List[DeviceInfo], ctx: ClientContext):
    ctx.store.update_client_state(devices=tuple(devices))


def build_client_router() -> ProcedureRouter:
    router = ProcedureRouter('client', wrappers=[log_calls(logger)])
    router.add('onUpdateAge', on_update_age, type='mutation', input=Age)
    router.add('getName', get_name, type='query', input=Name)
    router.add('onDeviceListUpdate', on_device_list_update, type='mutation', input=List[DeviceInfo])
    return router
