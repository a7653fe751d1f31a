#!/usr/bin/env python3
"""Exposure server traffic simulator.

Publishes area matches around a centre point and runs polling devices
through the client sync loop: probe size (HEAD), list new message ids,
fetch bodies, advance the watermark.

Usage:
    # 5 publishers, 50 polling devices around Seattle for 2 minutes
    python -m tools.simulator.simulate --server http://localhost:8000 --devices 50 --duration 120

    # Coarser regions, faster polling
    python -m tools.simulator.simulate --precision 2 --poll-seconds 2
"""

from __future__ import annotations

import argparse
import asyncio
import json
import math
import random
import time
from dataclasses import dataclass, field

import httpx

from exposure_server.core.models import MessageListResponse
from exposure_server.core.precision import round_to_precision
from exposure_server.core.sync import SyncCursor


@dataclass
class SimDevice:
    lat: float
    lon: float
    cursor: SyncCursor = field(default_factory=SyncCursor)
    polls: int = 0
    bytes_announced: int = 0
    messages_fetched: int = 0
    batches_skipped: int = 0
    errors: int = 0


def region_params(lat: float, lon: float, precision: int) -> dict:
    return {
        "lat": round_to_precision(lat, precision),
        "lon": round_to_precision(lon, precision),
        "precision": precision,
    }


def scatter(center_lat: float, center_lon: float, radius_km: float) -> tuple[float, float]:
    """Random point within radius of center."""
    angle = random.uniform(0, 2 * math.pi)
    dist_km = random.uniform(0, radius_km)
    lat = center_lat + (dist_km / 111.0) * math.cos(angle)
    lon = center_lon + (dist_km / (111.0 * math.cos(math.radians(center_lat)))) * math.sin(angle)
    return lat, lon


def make_area_match(lat: float, lon: float) -> dict:
    now_ms = int(time.time() * 1000)
    return {
        "userMessage": "You may have been exposed. Please monitor your symptoms.",
        "beginTimestamp": now_ms - random.randint(1, 48) * 3_600_000,
        "endTimestamp": now_ms,
        "areas": [
            {
                "location": {"latitude": round(lat, 6), "longitude": round(lon, 6)},
                "radiusMeters": random.choice([50, 100, 250, 500]),
            },
        ],
    }


async def run_publisher(
    client: httpx.AsyncClient,
    args: argparse.Namespace,
    stats: dict,
) -> None:
    """Publish area matches at a fixed rate."""
    interval = 60.0 / args.publishes_per_minute
    end_time = time.monotonic() + args.duration

    while time.monotonic() < end_time:
        lat, lon = scatter(*args.center, args.radius_km)
        region = region_params(lat, lon, args.precision)
        payload = {
            "region": {
                "latitudePrefix": region["lat"],
                "longitudePrefix": region["lon"],
                "precision": region["precision"],
            },
            "areaMatch": make_area_match(lat, lon),
        }
        try:
            resp = await client.put(
                f"{args.server}/api/v1/messages/areamatch",
                content=json.dumps(payload),
                headers={"content-type": "application/json"},
            )
            if resp.status_code == 200:
                stats["published"] += 1
            else:
                stats["publish_errors"] += 1
        except httpx.RequestError:
            stats["publish_errors"] += 1

        await asyncio.sleep(interval)


async def poll_once(client: httpx.AsyncClient, device: SimDevice, args: argparse.Namespace) -> None:
    """One pass of the sync loop for a device."""
    params = {**region_params(device.lat, device.lon, args.precision),
              "lastTimestamp": device.cursor.last_timestamp}
    url = f"{args.server}/api/v1/messages/list"

    resp = await client.head(url, params=params)
    resp.raise_for_status()
    size = int(resp.headers.get("content-length", 0))
    device.bytes_announced += size
    if size == 0:
        return

    resp = await client.get(url, params=params)
    resp.raise_for_status()
    listing = resp.json()
    ids = [info["messageId"] for info in listing["messageInfoes"]]
    if size > args.max_download_bytes:
        # Too large to download: drop the backlog but still move the cursor
        device.batches_skipped += 1
    elif ids:
        resp = await client.post(f"{args.server}/api/v1/messages/query",
                                 content=json.dumps({"ids": ids}))
        resp.raise_for_status()
        device.messages_fetched += len(resp.json()["matchMessages"])

    device.cursor.advance(MessageListResponse(max_response_timestamp=listing["maxResponseTimestamp"]))


async def run_device(client: httpx.AsyncClient, device: SimDevice, args: argparse.Namespace) -> None:
    end_time = time.monotonic() + args.duration
    # Spread the first polls out
    await asyncio.sleep(random.uniform(0, args.poll_seconds))

    while time.monotonic() < end_time:
        try:
            await poll_once(client, device, args)
            device.polls += 1
        except (httpx.RequestError, httpx.HTTPStatusError):
            device.errors += 1
        await asyncio.sleep(args.poll_seconds)


async def run_simulation(args: argparse.Namespace) -> None:
    """Run the full simulation."""
    devices = [SimDevice(*scatter(*args.center, args.radius_km)) for _ in range(args.devices)]
    stats = {"published": 0, "publish_errors": 0}

    print(f"Starting simulation: {args.publishers} publishers, {args.devices} devices")
    print(f"  Center: {args.center[0]:.4f}, {args.center[1]:.4f}")
    print(f"  Radius: {args.radius_km} km, precision {args.precision}")
    print(f"  Duration: {args.duration}s, poll every {args.poll_seconds}s")
    print(f"  Server: {args.server}")
    print()

    start = time.monotonic()

    async with httpx.AsyncClient(timeout=10.0) as client:
        tasks = [run_publisher(client, args, stats) for _ in range(args.publishers)]
        tasks += [run_device(client, dev, args) for dev in devices]
        await asyncio.gather(*tasks)

    elapsed = time.monotonic() - start
    print(f"\nSimulation complete in {elapsed:.1f}s")
    print(f"  Messages published: {stats['published']} ({stats['publish_errors']} errors)")
    print(f"  Polls: {sum(d.polls for d in devices)}")
    print(f"  Bytes announced: {sum(d.bytes_announced for d in devices)}")
    print(f"  Messages fetched: {sum(d.messages_fetched for d in devices)}")
    print(f"  Oversized batches skipped: {sum(d.batches_skipped for d in devices)}")
    print(f"  Poll errors: {sum(d.errors for d in devices)}")

    # Check server stats
    async with httpx.AsyncClient(timeout=10.0) as client:
        try:
            resp = await client.get(f"{args.server}/api/v1/stats")
        except httpx.RequestError:
            return
    if resp.status_code == 200:
        server_stats = resp.json()
        print("\nServer stats:")
        print(f"  Messages published: {server_stats['messages_published']}")
        print(f"  List requests: {server_stats['list_requests']}")
        print(f"  Size probes: {server_stats['size_probes']}")
        print(f"  Rejected: {server_stats['requests_rejected']}")


def main():
    parser = argparse.ArgumentParser(description="Exposure server traffic simulator")
    parser.add_argument("--server", default="http://localhost:8000", help="Server URL")
    parser.add_argument("--publishers", type=int, default=5, help="Number of publishers")
    parser.add_argument("--publishes-per-minute", type=float, default=6, help="Publishes per minute per publisher")
    parser.add_argument("--devices", type=int, default=20, help="Number of polling devices")
    parser.add_argument("--poll-seconds", type=float, default=5.0, help="Seconds between polls")
    parser.add_argument("--duration", type=int, default=60, help="Simulation duration in seconds")
    parser.add_argument("--precision", type=int, default=4, help="Region precision")
    parser.add_argument("--max-download-bytes", type=int, default=1_000_000,
                        help="Skip fetching when the size probe exceeds this")
    parser.add_argument("--center", type=str, default="47.6062,-122.3321",
                        help="Center lat,lon (default: Seattle)")
    parser.add_argument("--radius-km", type=float, default=10.0, help="Scatter radius in km")

    args = parser.parse_args()

    # Parse center
    lat, lon = args.center.split(",")
    args.center = (float(lat), float(lon))

    asyncio.run(run_simulation(args))


if __name__ == "__main__":
    main()
