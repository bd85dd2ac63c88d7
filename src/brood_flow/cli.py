#!/usr/bin/env python3
"""
brood-flow CLI Application

Listens for Broodminder devices using the Bluetooth Low Energy (BLE)
advertising protocol and publishes their readings to Home Assistant over MQTT.
"""

import asyncio
import csv
from datetime import datetime
from enum import Enum
import io
import json
import logging
from pathlib import Path
from typing import Any
from typing import Coroutine
from typing import List
from typing import Optional

from bleak.exc import BleakError
from rich.console import Console
from rich.table import Table
import typer

from brood_flow.config import Configuration
from brood_flow.config import load_config
from brood_flow.dispatcher import EventDispatcher
from brood_flow.errors import BroodFlowError
from brood_flow.mqtt import MqttPublisher
from brood_flow.policy import PublicationPolicy
from brood_flow.registry import DeviceRegistry
from brood_flow.scanner import scan_advertisements
from brood_flow.types import BroodminderDevice

logger = logging.getLogger(__name__)

# Create Typer app and console
app = typer.Typer(help="Publish Broodminder BLE devices to Home Assistant over MQTT")
console = Console()


class OutputFormat(str, Enum):
    """Output format options"""

    TEXT = "text"
    TABLE = "table"
    JSON = "json"
    CSV = "csv"


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def format_device(device: BroodminderDevice, alias: str | None = None) -> str:
    """Format a Broodminder device for display"""
    result = [
        f"Device: {device.model_name} ({device.device_id})",
        f"Name: {alias or device.device_id}",
        f"Firmware: v{device.firmware_version}",
        f"Battery: {device.battery_percent}%",
        f"Elapsed Ticks: {device.elapsed_ticks}",
        f"Temperature: {device.temperature_c:.1f}°C / {device.temperature_f:.1f}°F",
        f"Realtime Temperature: {device.realtime_temperature_c:.1f}°C / {device.realtime_temperature_f:.1f}°F",
    ]

    if device.realtime_weight_lbs is not None:
        result.append(f"Weight: {device.realtime_weight_kg:.2f} kg / {device.realtime_weight_lbs:.2f} lbs")

    return "\n".join(result)


def create_rich_table(devices: List[BroodminderDevice], aliases: dict[str, str]) -> Table:
    """Create a rich table for displaying device data"""
    table = Table(title="Broodminder Devices")

    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Model")
    table.add_column("Firmware")
    table.add_column("Battery")
    table.add_column("Temperature")
    table.add_column("Realtime Temp")
    table.add_column("Weight (lbs)")

    for device in devices:
        weight_str = f"{device.realtime_weight_lbs:.2f}" if device.realtime_weight_lbs is not None else "-"

        table.add_row(
            device.device_id,
            aliases.get(device.device_id, "-"),
            device.model_name,
            f"v{device.firmware_version}",
            f"{device.battery_percent}%",
            f"{device.temperature_f:.1f}°F",
            f"{device.realtime_temperature_f:.1f}°F",
            weight_str,
        )

    return table


def device_to_dict(device: BroodminderDevice, aliases: dict[str, str]) -> dict[str, Any]:
    data: dict[str, Any] = {
        "device_id": device.device_id,
        "name": aliases.get(device.device_id),
        "model_number": device.model,
        "model_name": device.model_name,
        "firmware_version": device.firmware_version,
        "battery": device.battery_percent,
        "elapsed_ticks": device.elapsed_ticks,
        "temperature_c": device.temperature_c,
        "temperature_f": device.temperature_f,
        "realtime_temperature_c": device.realtime_temperature_c,
        "realtime_temperature_f": device.realtime_temperature_f,
        "timestamp": datetime.now().isoformat(),
    }

    if device.realtime_weight_kg is not None:
        data["weight_kg"] = device.realtime_weight_kg
        data["weight_lbs"] = device.realtime_weight_lbs

    return data


def output_json(devices: List[BroodminderDevice], aliases: dict[str, str]) -> None:
    """Output device data in JSON format"""
    console.print_json(json.dumps([device_to_dict(device, aliases) for device in devices]))


def output_csv(devices: List[BroodminderDevice], aliases: dict[str, str]) -> None:
    """Output device data in CSV format"""
    output = io.StringIO()
    fieldnames = [
        "device_id",
        "name",
        "model_name",
        "firmware_version",
        "battery",
        "temperature_c",
        "temperature_f",
        "realtime_temperature_c",
        "realtime_temperature_f",
        "weight_lbs",
        "timestamp",
    ]

    writer = csv.DictWriter(output, fieldnames=fieldnames, extrasaction="ignore")
    writer.writeheader()

    for device in devices:
        row = device_to_dict(device, aliases)
        row["name"] = row["name"] or ""
        for key in ("temperature_c", "temperature_f", "realtime_temperature_c", "realtime_temperature_f"):
            row[key] = f"{row[key]:.1f}"
        row["weight_lbs"] = f"{row['weight_lbs']:.2f}" if "weight_lbs" in row else ""
        writer.writerow(row)

    console.print(output.getvalue())


async def collect_devices(duration: float, aliases: dict[str, str]) -> List[BroodminderDevice]:
    """
    Scan for Broodminder devices without publishing anything.

    Args:
        duration: Duration in seconds to scan for devices
        aliases: Display names keyed by device ID

    Returns:
        The latest state of every Broodminder device seen
    """
    registry = DeviceRegistry()
    dispatcher = EventDispatcher(registry, publish_enabled=False, aliases=aliases)
    await dispatcher.run(scan_advertisements(duration=duration))
    return sorted(registry.devices(), key=lambda device: device.device_id)


async def run_until_first_exit(*coros: Coroutine) -> None:
    """Run coroutines side by side until one of them returns or raises, then cancel the rest"""
    tasks = [asyncio.create_task(coro) for coro in coros]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    for task in done:
        # Re-raise the failure of the task that stopped first, e.g. TransportFatal
        task.result()


async def run_bridge(config: Configuration) -> None:
    """Publish live Broodminder readings until the BLE stream ends or MQTT fails"""
    registry = DeviceRegistry()

    if not config.mqtt_enabled:
        logger.info("MQTT publishing is disabled")
        dispatcher = EventDispatcher(registry, publish_enabled=False, aliases=config.aliases)
        await dispatcher.run(scan_advertisements())
        return

    publisher = MqttPublisher(config.mqtt_config())
    policy = PublicationPolicy(publisher, discovery_prefix=config.discovery_prefix, realtime=config.realtime)
    dispatcher = EventDispatcher(registry, policy, publish_enabled=True, aliases=config.aliases)
    await run_until_first_exit(publisher.run(), dispatcher.run(scan_advertisements()))


@app.command()
def bridge(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to configuration.yml"),
    broker_host: Optional[str] = typer.Option(None, "--broker-host", help="MQTT broker host (overrides configuration)"),
    broker_port: Optional[int] = typer.Option(None, "--broker-port", help="MQTT broker port (overrides configuration)"),
    no_mqtt: bool = typer.Option(False, "--no-mqtt", help="Decode advertisements without publishing"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """
    Publish Broodminder devices to Home Assistant

    Runs until interrupted. Press Ctrl+C to stop.
    """
    setup_logging(verbose)

    try:
        config = load_config(config_path)
        if broker_host:
            config.broker_host = broker_host
        if broker_port:
            config.broker_port = broker_port
        if no_mqtt:
            config.mqtt_enabled = False
        logger.info("Settings: %s", config)

        asyncio.run(run_bridge(config))

    except KeyboardInterrupt:
        console.print("\nBridge stopped by user.", style="yellow")
    except (BroodFlowError, BleakError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def scan(
    duration: float = typer.Option(10.0, "--duration", "-d", help="Duration in seconds to scan for devices"),
    output_format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
    raw: bool = typer.Option(False, "--raw", "-r", help="Show raw data bytes"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to configuration.yml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """Scan for Broodminder BLE devices and print their readings"""
    if verbose:
        setup_logging(verbose)

    try:
        aliases = load_config(config_path).aliases

        with console.status(f"Scanning for Broodminder devices for {duration} seconds..."):
            devices = asyncio.run(collect_devices(duration, aliases))

        if not devices:
            console.print("No Broodminder devices found.", style="yellow")
            return

        if output_format == OutputFormat.JSON:
            output_json(devices, aliases)
        elif output_format == OutputFormat.CSV:
            output_csv(devices, aliases)
        elif output_format == OutputFormat.TABLE:
            console.print(create_rich_table(devices, aliases))
        else:
            for device in devices:
                console.print(format_device(device, aliases.get(device.device_id)))
                console.print("")

        if raw and output_format in (OutputFormat.TABLE, OutputFormat.TEXT):
            console.print("\nRaw Data:")
            for device in devices:
                console.print(f"{device.device_id}: {device.raw_data.hex()}")

    except (BroodFlowError, BleakError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)


def main():
    app()
