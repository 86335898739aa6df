"""Device status probes.

Each probe can fail on its own. ``collect_status`` gathers them independently
so one broken probe never hides the others.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Optional,
    Protocol,
    Sequence,
    runtime_checkable,
)

import httpx

from .exceptions import TransientError
from .logging_utils import log_event

EXTERNAL_IP_URL = "https://api.ipify.org"
GEO_LOCATION_URL = "http://ip-api.com/json/{ip}"
DEFAULT_PROBE_TIMEOUT_SECONDS = 10.0

logger = logging.getLogger(__name__)


class StatusProbeError(TransientError):
    """A status probe could not produce a value."""


@dataclass(frozen=True)
class GeoLocation:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class StatusReport:
    hostname: str
    internal_ips: str
    external_ip: str
    uptime: str
    free_spaces: str


@runtime_checkable
class StatusProbe(Protocol):
    async def hostname(self) -> str: ...

    async def ip_addresses(self) -> list[str]: ...

    async def external_ip_address(self) -> str: ...

    async def uptime(self) -> str: ...

    async def free_spaces(self) -> str: ...

    async def geo_location(self, ip: str) -> GeoLocation: ...


class SystemStatusProbe:
    """Probes backed by local commands and public IP lookup services."""

    def __init__(
        self,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "SystemStatusProbe":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.close()

    async def hostname(self) -> str:
        try:
            return socket.gethostname()
        except OSError as exc:
            raise StatusProbeError(f"hostname lookup failed: {exc}") from exc

    async def ip_addresses(self) -> list[str]:
        try:
            output = await self._run_command(("hostname", "-I"))
        except StatusProbeError as exc:
            log_event(logger, logging.DEBUG, "status.ip_addresses.failed", exc=exc)
            return []
        return [address for address in output.split() if address]

    async def external_ip_address(self) -> str:
        try:
            response = await self._client.get(EXTERNAL_IP_URL)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise StatusProbeError(f"external ip lookup failed: {exc}") from exc
        address = response.text.strip()
        if not address:
            raise StatusProbeError("external ip lookup returned an empty body")
        try:
            ipaddress.ip_address(address)
        except ValueError as exc:
            raise StatusProbeError(
                "external ip lookup returned something other than an address"
            ) from exc
        return address

    async def uptime(self) -> str:
        return await self._run_command(("uptime",))

    async def free_spaces(self) -> str:
        return await self._run_command(("df", "-h"))

    async def geo_location(self, ip: str) -> GeoLocation:
        try:
            response = await self._client.get(GEO_LOCATION_URL.format(ip=ip))
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            raise StatusProbeError(f"geo location lookup failed: {exc}") from exc
        if not isinstance(payload, dict) or payload.get("status") != "success":
            message = payload.get("message") if isinstance(payload, dict) else None
            raise StatusProbeError(
                f"geo location lookup failed: {message or 'unexpected response'}"
            )
        try:
            return GeoLocation(
                latitude=float(payload["lat"]), longitude=float(payload["lon"])
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise StatusProbeError(
                "geo location lookup returned no coordinates"
            ) from exc

    async def _run_command(self, args: Sequence[str]) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise StatusProbeError(f"failed to run {args[0]}: {exc}") from exc
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self._timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise StatusProbeError(f"{args[0]} timed out") from exc
        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise StatusProbeError(
                f"{args[0]} exited with {process.returncode}: {detail}"
            )
        return stdout.decode("utf-8", errors="replace").strip()


async def collect_status(
    probe: StatusProbe, *, log: Optional[logging.Logger] = None
) -> StatusReport:
    """Query every probe; failed probes contribute an empty value."""
    log = log or logger

    async def _value(name: str, call: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await call()
        except Exception as exc:
            log_event(log, logging.WARNING, "status.probe.failed", probe=name, exc=exc)
            return None

    hostname = await _value("hostname", probe.hostname) or ""
    internal_ips = ", ".join(await _value("ip_addresses", probe.ip_addresses) or [])
    external_ip = await _value("external_ip_address", probe.external_ip_address) or ""
    uptime = await _value("uptime", probe.uptime) or ""
    free_spaces = await _value("free_spaces", probe.free_spaces) or ""
    return StatusReport(
        hostname=hostname,
        internal_ips=internal_ips,
        external_ip=external_ip,
        uptime=uptime,
        free_spaces=free_spaces,
    )


def format_status(report: StatusReport) -> str:
    return (
        f"Hostname : {report.hostname}\n"
        "\n"
        f"Internal IP : {report.internal_ips}\n"
        "\n"
        f"External IP : {report.external_ip}\n"
        "\n"
        "Uptime :\n"
        f"{report.uptime}\n"
        "\n"
        "Free Spaces :\n"
        f"{report.free_spaces}"
    )
