"""Best-effort host side effects performed before a driver service starts."""

import asyncio
import logging
import socket
import sys
from dataclasses import dataclass
from pathlib import Path

import psutil

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class HostActionResult:
    """Outcome of a best-effort host action.

    A failed action is reported at warning level and never stops the run.
    """

    action: str
    attempted: bool
    succeeded: bool
    detail: str | None = None


def _listens_on(process: psutil.Process, port: int) -> bool:
    try:
        connections = process.net_connections(kind="inet")
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return False
    return any(
        conn.status == psutil.CONN_LISTEN and conn.laddr and conn.laddr.port == port
        for conn in connections
    )


async def kill_stale_processes(
    process_name: str, port: int | None = None
) -> HostActionResult:
    """Kill running processes left over from an earlier run.

    Args:
        process_name: Executable name without extension (e.g., "chromedriver")
        port: Only kill processes listening on this port. Services of parallel
            workers on other ports are left running.

    """
    action = f"kill-stale:{process_name}"
    names = {process_name.lower(), f"{process_name.lower()}.exe"}

    def _kill() -> list[str]:
        failures: list[str] = []
        for process in psutil.process_iter(["name"]):
            name = (process.info.get("name") or "").lower()
            if name not in names:
                continue
            if port is not None and not _listens_on(process, port):
                log.debug("Keep process [%s] pid=%d", name, process.pid)
                continue
            log.info("Kill process [%s] pid=%d", name, process.pid)
            try:
                process.kill()
                process.wait(timeout=5)
            except psutil.NoSuchProcess:
                continue
            except (psutil.AccessDenied, psutil.TimeoutExpired) as exc:
                log.warning("Failed to kill process [%s]: %s", name, exc)
                failures.append(f"pid {process.pid}: {exc}")
        return failures

    failures = await asyncio.to_thread(_kill)
    if failures:
        return HostActionResult(
            action=action, attempted=True, succeeded=False, detail="; ".join(failures)
        )
    return HostActionResult(action=action, attempted=True, succeeded=True)


async def _netsh(*args: str) -> tuple[int, str]:
    process = await asyncio.create_subprocess_exec(
        "netsh",
        "advfirewall",
        "firewall",
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    stdout, _ = await process.communicate()
    return process.returncode or 0, stdout.decode(errors="replace").strip()


async def configure_firewall_rule(rule_name: str, program: Path) -> HostActionResult:
    """Replace the inbound allow rule for a driver service binary.

    The rule is deleted first so repeated runs leave exactly one rule. Adding
    it needs elevated privileges; without them the operating system prompts
    the user instead.
    """
    action = f"firewall-rule:{rule_name}"
    if sys.platform != "win32":
        return HostActionResult(
            action=action,
            attempted=False,
            succeeded=False,
            detail="firewall rules are only managed on Windows",
        )

    try:
        await _netsh("delete", "rule", f"name={rule_name}")
        returncode, output = await _netsh(
            "add",
            "rule",
            f"name={rule_name}",
            "dir=in",
            "action=allow",
            f"program={program}",
            "enable=yes",
            "profile=any",
            f"description={rule_name} Added by test automation. OK to delete.",
        )
    except OSError as exc:
        log.warning("Could not run netsh to add firewall rule %r: %s", rule_name, exc)
        return HostActionResult(
            action=action, attempted=True, succeeded=False, detail=str(exc)
        )

    if returncode != 0:
        log.warning(
            "Failed to add firewall rule %r (run elevated, or click 'Allow' when "
            "the firewall prompt appears): %s",
            rule_name,
            output,
        )
        return HostActionResult(
            action=action, attempted=True, succeeded=False, detail=output
        )

    log.info("Firewall rule %r configured for %s", rule_name, program)
    return HostActionResult(action=action, attempted=True, succeeded=True)


def port_in_use(host: str, port: int) -> bool:
    """Check whether something already accepts connections on a port."""
    try:
        with socket.create_connection((host, port), timeout=0.5):
            return True
    except OSError:
        return False
