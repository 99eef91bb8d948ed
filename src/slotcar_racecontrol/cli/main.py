from __future__ import annotations

import asyncio
import json

import click

from ..adapters.nats_publisher import RaceEventPublisher
from ..adapters.replay import ReplayTelemetrySource
from ..announcer.dispatcher import AnnouncementDispatcher
from ..announcer.queue import get_announcement_queue
from ..announcer.speakers import LoggingSpeaker, Pyttsx3Speaker
from ..config.provider import SettingsProvider
from ..config.settings import get_settings
from ..core.race_control import RaceControl
from ..logging import configure_logging


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def cli(log_level: str | None):
    """Slot-car race control announcer CLI"""
    configure_logging(log_level)


@cli.command()
@click.argument("recording", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--mode",
    type=click.Choice(["practice", "qualifying", "race"]),
    default="race",
    show_default=True,
)
@click.option("--laps", type=int, default=None, help="Override the race lap target")
@click.option("--speed", type=float, default=0.0, help="Playback speed factor (0 = no delays)")
@click.option("--speak/--no-speak", default=True, help="Announce race events")
@click.option("--tts", is_flag=True, help="Use pyttsx3 instead of logging announcements")
@click.option("--publish/--no-publish", default=None, help="Publish race events to NATS")
@click.pass_context
def replay(
    ctx: click.Context,
    recording: str,
    mode: str,
    laps: int | None,
    speed: float,
    speak: bool,
    tts: bool,
    publish,
):
    """Run a session over a JSON-lines telemetry recording."""
    settings = get_settings()
    if ctx.parent is not None and ctx.parent.params.get("log_level") is None:
        configure_logging(settings.log_level)
    if laps is not None:
        settings.race = settings.race.model_copy(update={"laps": laps or None})
    settings.speech = speak
    if publish is not None:
        settings.publish_events = publish
    config = SettingsProvider(settings)

    async def _run():
        queue = get_announcement_queue()
        queue.set_speaker(Pyttsx3Speaker() if tts else LoggingSpeaker())
        dispatcher = AnnouncementDispatcher(config, queue=queue)
        source = ReplayTelemetrySource(recording, speed=speed)
        listeners = [lambda event: click.echo(f"event {event.key} driver={event.driver_id}")]
        publisher = None
        if settings.publish_events:
            publisher = RaceEventPublisher(settings, driver_name=dispatcher.driver_name)
            try:
                await publisher.connect()
                listeners.append(publisher)
            except Exception as e:
                click.echo(f"NATS unavailable ({e}); not publishing", err=True)
        control = RaceControl(source, config, dispatcher, listeners)
        session = await control.start_session(mode)
        try:
            await session.join()
            await queue.wait_idle()
            for entry in session.ranking:
                name = dispatcher.driver_name(entry.id) or f"#{entry.id + 1}"
                grid = "-" if entry.grid_position is None else entry.grid_position + 1
                click.echo(
                    f"{entry.position + 1:>2}. {name:<12} laps={entry.tick.laps} "
                    f"best={entry.tick.best_lap} grid={grid}"
                )
            if source.skipped:
                click.echo(f"skipped {source.skipped} invalid record(s)", err=True)
        finally:
            await control.close()
            if publisher is not None:
                await publisher.close()
            await queue.close()

    asyncio.run(_run())


@cli.command(name="print-config")
def print_config():
    """Print resolved settings as JSON."""
    click.echo(json.dumps(get_settings().model_dump(), indent=2))


if __name__ == "__main__":
    cli()
