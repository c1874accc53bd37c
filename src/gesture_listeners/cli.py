"""gesture-listeners CLI.

Usage:
    gesture-listeners replay RECORDING --config session.yaml
    gesture-listeners validate session.yaml
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from gesture_listeners.bus import Channels
from gesture_listeners.config import SessionConfig, load_config
from gesture_listeners.errors import ConfigurationError

app = typer.Typer(
    name="gesture-listeners",
    help="🤚 Turn hand-landmark streams into gesture events.",
    add_completion=False,
)

# Channels echoed during replay
_OUTPUT_CHANNELS = (
    Channels.SELECTION,
    Channels.PLAYBACK,
    Channels.FORESHADOWING_AREA,
    Channels.EMPHASIS,
    Channels.KEYFRAME,
)


def _setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load(path: str) -> SessionConfig:
    config_path = Path(path)
    if not config_path.exists():
        typer.echo(f"❌ Config not found: {path}", err=True)
        raise typer.Exit(1)
    try:
        return load_config(config_path)
    except ConfigurationError as e:
        typer.echo(f"❌ Invalid config {path}: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def replay(
    recording: str = typer.Argument(..., help="Path to recording file"),
    config: Optional[str] = typer.Option(None, help="Path to session YAML config"),
    log_level: str = typer.Option("warning", help="Log level"),
):
    """Replay a recorded session through the listeners on virtual time."""
    from gesture_listeners.recorder import FramePlayer
    from gesture_listeners.session import GestureSession
    from gesture_listeners.timers import ManualScheduler

    _setup_logging(log_level)

    path = Path(recording)
    if not path.exists():
        typer.echo(f"❌ Recording not found: {recording}", err=True)
        raise typer.Exit(1)

    session_config = _load(config) if config else SessionConfig()
    player = FramePlayer.load(path)
    typer.echo(f"▶️  Replaying {path.name} ({player.frame_count} frames, {player.duration:.1f}s)")

    scheduler = ManualScheduler()
    try:
        session = GestureSession(session_config, scheduler)
    except ConfigurationError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    event_count = 0

    def on_event(event):
        nonlocal event_count
        event_count += 1
        payload = event.payload
        if event.channel == Channels.FORESHADOWING_AREA:
            payload = f"{len(payload)} poses"
        typer.echo(f"   🤚 [{scheduler.now():8.0f} ms] {event.channel}: {payload}")

    for channel in _OUTPUT_CHANNELS:
        session.bus.subscribe(channel, on_event)

    with session:
        player.replay(session, scheduler)

    typer.echo(f"\n✅ Replay complete. {event_count} events published.")


@app.command()
def validate(
    config: str = typer.Argument(..., help="Path to session YAML config"),
):
    """Check a session config and list the listeners it defines."""
    from gesture_listeners.variants import VariantRegistry

    session_config = _load(config)
    registry = VariantRegistry.with_defaults()

    failed = False
    for definition in session_config.listeners:
        try:
            registry.create(definition.variant, **definition.options)
        except ConfigurationError as e:
            typer.echo(f"❌ {definition.name}: {e}", err=True)
            failed = True
            continue
        region = definition.config.region.to_dict()
        state = "active" if definition.active else "inactive"
        typer.echo(
            f"   {definition.name}: {definition.variant} -> {definition.config.channel_key} "
            f"{region} ({state})"
        )

    if failed:
        raise typer.Exit(1)

    rc = session_config.recognizers
    typer.echo(
        f"✅ {len(session_config.listeners)} listeners, recognizers hold "
        f"{rc.hold_duration:.0f} ms / threshold {rc.distance_threshold:g}"
    )


def main():
    app()


if __name__ == "__main__":
    main()
