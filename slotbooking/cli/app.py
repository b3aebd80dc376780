"""
Main CLI application using Typer.
"""

from dataclasses import dataclass
from datetime import date as civil_date
from pathlib import Path
from typing import Annotated, List, NoReturn, Optional

import pendulum
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..adapters.catalog import CatalogScheduleSource
from ..adapters.draft_storage import FileDraftStorage
from ..adapters.file_store import JsonFileAppointmentStore
from ..clock import Clock, FixedClock, SystemClock
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import (
    BookingError,
    InvalidRequest,
    NoAvailability,
    SlotConflict,
    UpstreamUnavailable,
)
from ..domain.models import Appointment, PendingBooking, SlotStatus
from ..logging_config import configure_logging
from ..services.availability import AvailabilityService
from ..services.booking import BookingService
from ..services.booking_guard import BookingConflictGuard
from ..services.recovery import PendingBookingRecovery

app = typer.Typer(
    name="slotbooking",
    help="Find free slots and book appointments with salon and barbershop professionals",
    add_completion=False
)

console = Console()

DEFAULT_STORE = Path("appointments.json")
DEFAULT_SESSION_DIR = Path.home() / ".slotbooking_session"

STATUS_STYLES = {
    SlotStatus.AVAILABLE: "bold green",
    SlotStatus.BOOKED: "red",
    SlotStatus.BREAK: "yellow",
    SlotStatus.PAST: "dim",
}

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
StoreOption = Annotated[Path, typer.Option("--store", help="Appointment file")]
NowOption = Annotated[Optional[str], typer.Option("--now", help="Pretend the current time is this ISO datetime")]


@dataclass
class Engine:
    """Wired services for one CLI invocation."""
    config: AppConfig
    clock: Clock
    source: CatalogScheduleSource
    store: JsonFileAppointmentStore
    availability: AvailabilityService
    booking: BookingService


def _build_engine(config_file: Optional[Path], store_path: Path, now: Optional[str]) -> Engine:
    config = AppConfig.load_from_yaml(config_file or get_default_config_path())
    configure_logging(config.log_level)

    if now:
        clock: Clock = FixedClock(pendulum.parse(now, tz=config.timezone))
    else:
        clock = SystemClock(config.timezone)

    retry_policy = config.retry_policy()
    source = CatalogScheduleSource(config)
    store = JsonFileAppointmentStore(store_path)
    availability = AvailabilityService(
        schedule_source=source,
        appointment_store=store,
        clock=clock,
        slot_generator=config.slot_generator(),
        retry_policy=retry_policy,
    )
    guard = BookingConflictGuard(
        appointment_store=store,
        clock=clock,
        max_commit_attempts=config.booking.max_commit_attempts,
        retry_policy=retry_policy,
    )
    booking = BookingService(
        availability=availability,
        schedule_source=source,
        appointment_store=store,
        guard=guard,
        clock=clock,
        retry_policy=retry_policy,
    )
    return Engine(config, clock, source, store, availability, booking)


def _parse_date(value: Optional[str], engine: Engine) -> civil_date:
    if not value:
        return engine.clock.now().date()
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=engine.config.timezone).date()
    except ValueError as e:
        raise InvalidRequest(f"Could not parse date {value!r}: {e}") from e


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    raise typer.Exit(1)


def _handle_error(error: Exception) -> NoReturn:
    """Render a booking error the way the end user should see it."""
    if isinstance(error, SlotConflict):
        _fail(f"{error}\nRun 'slotbooking slots' again to see the current availability.")
    if isinstance(error, UpstreamUnavailable):
        _fail("The booking service is not reachable right now. Please try again in a moment.")
    _fail(str(error))


def _print_appointment(appointment: Appointment, title: str) -> None:
    console.print(
        f"[bold green]✓ {title}[/bold green] "
        f"[bold]{appointment.id}[/bold] {appointment}"
    )


@app.command()
def slots(
    professional: Annotated[str, typer.Argument(help="Professional id")],
    service: Annotated[Optional[List[str]], typer.Option("--service", "-s", help="Service id (repeatable)")] = None,
    date: Annotated[Optional[str], typer.Option("--date", "-d", help="Date (YYYY-MM-DD), defaults to today")] = None,
    only_available: Annotated[bool, typer.Option("--available", help="Show bookable times only")] = False,
    config_file: ConfigOption = None,
    store: StoreOption = DEFAULT_STORE,
    now: NowOption = None,
):
    """
    Show the slots of a professional for a day.

    Examples:

        slotbooking slots ana --service cut --date 2024-11-25
        slotbooking slots ana -s cut -s beard --available
    """
    try:
        engine = _build_engine(config_file, store, now)
        day = _parse_date(date, engine)
        result = engine.availability.get_day_slots(
            professional_id=professional,
            service_ids=service or [],
            day=day,
        )
    except FileNotFoundError as e:
        _fail(str(e))
    except ValueError as e:
        _fail(str(e))
    except BookingError as e:
        _handle_error(e)

    if result.no_availability_reason == NoAvailability.DAY_OFF:
        console.print(f"[yellow]⚠ {professional} does not work on {day.isoformat()}.[/yellow]")
        return
    if result.no_availability_reason == NoAvailability.FULLY_BOOKED:
        console.print(
            f"[yellow]⚠ No free time left on {day.isoformat()}.[/yellow]\n"
            "Try another day or fewer services."
        )
        if only_available:
            return

    table = Table(
        title=f"{professional} · {day.isoformat()} · {result.duration_minutes} min",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Time", style="bold")
    table.add_column("Status")

    for slot in result.slots:
        if only_available and not slot.is_available:
            continue
        table.add_row(slot.time, f"[{STATUS_STYLES[slot.status]}]{slot.status.value}[/]")

    console.print()
    console.print(table)
    console.print()


@app.command()
def book(
    professional: Annotated[str, typer.Argument(help="Professional id")],
    time: Annotated[str, typer.Option("--time", "-t", help="Start time (HH:MM)")],
    service: Annotated[Optional[List[str]], typer.Option("--service", "-s", help="Service id (repeatable)")] = None,
    date: Annotated[Optional[str], typer.Option("--date", "-d", help="Date (YYYY-MM-DD), defaults to today")] = None,
    client: Annotated[Optional[str], typer.Option("--client", help="Signed-in client id. Without it the booking is kept as a draft.")] = None,
    session_dir: Annotated[Path, typer.Option("--session-dir", help="Where pending drafts are kept")] = DEFAULT_SESSION_DIR,
    config_file: ConfigOption = None,
    store: StoreOption = DEFAULT_STORE,
    now: NowOption = None,
):
    """
    Book a slot. Without --client the selection is saved until 'resume'.
    """
    try:
        engine = _build_engine(config_file, store, now)
        day = _parse_date(date, engine)
        provider = engine.config.provider_of(professional)
        if provider is None:
            raise InvalidRequest(f"Unknown professional: {professional!r}.")
        if not service:
            raise InvalidRequest("Select at least one service.")

        if client is None:
            draft = PendingBooking(
                provider_id=provider.id,
                professional_id=professional,
                service_ids=service,
                date=day,
                time=time,
            )
            recovery = PendingBookingRecovery(FileDraftStorage(session_dir), engine.booking)
            recovery.stash(draft)
            console.print(
                "[yellow]Sign in to finish this booking.[/yellow] "
                f"Then run: slotbooking resume --provider {provider.id} --client <id>"
            )
            return

        appointment_id = engine.booking.confirm(
            client_id=client,
            provider_id=provider.id,
            professional_id=professional,
            service_ids=service,
            day=day,
            time=time,
        )
        _print_appointment(engine.store.get(appointment_id), "Booked")
    except FileNotFoundError as e:
        _fail(str(e))
    except ValueError as e:
        _fail(str(e))
    except BookingError as e:
        _handle_error(e)


@app.command()
def resume(
    provider: Annotated[str, typer.Option("--provider", help="Provider of the current page")],
    client: Annotated[str, typer.Option("--client", help="Signed-in client id")],
    session_dir: Annotated[Path, typer.Option("--session-dir", help="Where pending drafts are kept")] = DEFAULT_SESSION_DIR,
    config_file: ConfigOption = None,
    store: StoreOption = DEFAULT_STORE,
    now: NowOption = None,
):
    """
    Finish a booking started before signing in.
    """
    try:
        engine = _build_engine(config_file, store, now)
        recovery = PendingBookingRecovery(FileDraftStorage(session_dir), engine.booking)
        appointment_id = recovery.resume(client_id=client, provider_id=provider)
    except FileNotFoundError as e:
        _fail(str(e))
    except ValueError as e:
        _fail(str(e))
    except BookingError as e:
        _handle_error(e)

    if appointment_id is None:
        console.print("[dim]Nothing to resume.[/dim]")
        return
    _print_appointment(engine.store.get(appointment_id), "Booked")


def _transition(action: str, appointment_id: str, config_file, store, now, reason=None) -> None:
    try:
        engine = _build_engine(config_file, store, now)
        if action == "cancel":
            appointment = engine.booking.cancel(appointment_id, reason)
        elif action == "decline":
            appointment = engine.booking.decline(appointment_id, reason or "")
        elif action == "accept":
            appointment = engine.booking.accept(appointment_id)
        else:
            appointment = engine.booking.complete(appointment_id)
    except FileNotFoundError as e:
        _fail(str(e))
    except ValueError as e:
        _fail(str(e))
    except BookingError as e:
        _handle_error(e)

    _print_appointment(appointment, appointment.status.value.capitalize())


@app.command()
def cancel(
    appointment_id: Annotated[str, typer.Argument(help="Appointment id")],
    reason: Annotated[Optional[str], typer.Option("--reason", help="Why the appointment is cancelled")] = None,
    config_file: ConfigOption = None,
    store: StoreOption = DEFAULT_STORE,
    now: NowOption = None,
):
    """Cancel an appointment."""
    _transition("cancel", appointment_id, config_file, store, now, reason)


@app.command()
def decline(
    appointment_id: Annotated[str, typer.Argument(help="Appointment id")],
    reason: Annotated[str, typer.Option("--reason", help="Why the request is refused")],
    config_file: ConfigOption = None,
    store: StoreOption = DEFAULT_STORE,
    now: NowOption = None,
):
    """Refuse a pending booking request."""
    _transition("decline", appointment_id, config_file, store, now, reason)


@app.command()
def accept(
    appointment_id: Annotated[str, typer.Argument(help="Appointment id")],
    config_file: ConfigOption = None,
    store: StoreOption = DEFAULT_STORE,
    now: NowOption = None,
):
    """Confirm a pending booking request."""
    _transition("accept", appointment_id, config_file, store, now)


@app.command()
def complete(
    appointment_id: Annotated[str, typer.Argument(help="Appointment id")],
    config_file: ConfigOption = None,
    store: StoreOption = DEFAULT_STORE,
    now: NowOption = None,
):
    """Mark a finished appointment as completed."""
    _transition("complete", appointment_id, config_file, store, now)


@app.command()
def professionals(config_file: ConfigOption = None):
    """
    List all configured professionals.
    """
    try:
        config = AppConfig.load_from_yaml(config_file or get_default_config_path())
    except FileNotFoundError as e:
        _fail(str(e))
    except ValueError as e:
        _fail(str(e))

    if not config.providers:
        console.print("[yellow]No providers defined in the config file.[/yellow]")
        return

    table = Table(
        title="Professionals",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Id", style="bold yellow")
    table.add_column("Name")
    table.add_column("Provider", style="dim")
    table.add_column("Services", style="dim")

    for provider in config.providers:
        for professional in provider.professionals:
            table.add_row(
                professional.id,
                professional.name,
                provider.name,
                ", ".join(professional.services)
            )

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbooking[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
