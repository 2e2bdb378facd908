#!/usr/bin/env python3
"""
golfsim command-line tool.

Usage:
    golfsim simulate --speed 70 --angle 11 --spin 2700 --wind-speed 6 --wind-angle 180
    golfsim wind-effect --wind-speed 10 --wind-angle 180 --shot-type high
    golfsim stats --lat 56.348 --lon -2.82 --month 7
    golfsim clear-old --days 30
"""
import argparse
import sys
from datetime import timedelta
from typing import List, Optional

from golfsim.config import get_settings
from golfsim.exceptions import GolfSimError


def simulate(args) -> None:
    """Fly one shot and print the summary."""
    from golfsim.physics.trajectory import calculate_trajectory

    result = calculate_trajectory(
        initial_speed=args.speed,
        launch_angle=args.angle,
        spin_rate=args.spin,
        wind_speed=args.wind_speed,
        wind_angle=args.wind_angle,
        spin_axis_tilt=args.tilt,
    )

    print("\n" + "=" * 60)
    print("SHOT SIMULATION")
    print("=" * 60)
    print(f"Launch:      {args.speed:.1f} m/s at {args.angle:.1f} deg, {args.spin:.0f} rpm")
    print(f"Wind:        {args.wind_speed:.1f} m/s at {args.wind_angle:.0f} deg")
    print("-" * 60)
    print(f"Distance:    {result.distance:.1f} m")
    print(f"Ground:      {result.ground_distance:.1f} m")
    print(f"Lateral:     {result.lateral_deviation:+.1f} m")
    print(f"Apex:        {result.apex:.1f} m")
    print(f"Flight time: {result.flight_time:.2f} s")
    if result.iteration_limit_exceeded:
        print("WARNING: iteration limit reached before landing")

    if args.points:
        print("-" * 60)
        print(f"{'t (s)':>8} {'x (m)':>9} {'y (m)':>9} {'z (m)':>9}")
        for p in result.points:
            print(f"{p.t:8.3f} {p.x:9.2f} {p.y:9.2f} {p.z:9.2f}")
    print("=" * 60 + "\n")


def wind_effect(args) -> None:
    """Print the quick carry estimate for a wind."""
    from golfsim.physics.wind import ShotType, WindModel

    shot_type = ShotType[args.shot_type.upper()]
    effect = WindModel().carry_effect_percent(
        args.wind_speed, args.wind_angle, shot_height=shot_type.height
    )
    print(f"Carry change: {effect:+.1f}% ({shot_type.name.lower()} shot)")


def _open_storage():
    from golfsim.weather.storage import WeatherStorage

    storage = WeatherStorage()
    storage.initialize()
    return storage


def stats(args) -> None:
    """Print historical weather statistics for a location and month."""
    with _open_storage() as storage:
        result = storage.get_historical_stats(args.lat, args.lon, args.month)

    if result is None:
        print(f"\nNo observations stored for ({args.lat}, {args.lon}) in month {args.month}.")
        return

    print("\n" + "=" * 60)
    print(f"HISTORICAL WEATHER ({args.lat}, {args.lon}) month {args.month}")
    print("=" * 60)
    print(f"Samples:     {result.sample_count}")
    print(f"Temperature: {result.avg_temperature:.1f} C")
    print(f"Humidity:    {result.avg_humidity:.0f} %")
    print(f"Pressure:    {result.avg_pressure:.1f} hPa")
    print(f"Wind speed:  {result.avg_wind_speed:.1f} m/s")
    top = sorted(
        range(len(result.wind_direction_frequency)),
        key=lambda i: result.wind_direction_frequency[i],
        reverse=True,
    )[:3]
    sectors = ", ".join(
        f"{i * 10}-{i * 10 + 10} deg ({result.wind_direction_frequency[i]})" for i in top
        if result.wind_direction_frequency[i]
    )
    print(f"Top winds:   {sectors}")
    print("=" * 60 + "\n")


def clear_old(args) -> None:
    """Delete stored observations older than the given number of days."""
    from golfsim.weather.environment import utcnow

    cutoff = utcnow() - timedelta(days=args.days)
    with _open_storage() as storage:
        deleted = storage.clear_old_data(cutoff)
    print(f"Deleted {deleted} observations older than {cutoff.isoformat()}.")


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description="golfsim ball flight tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Driver into a 6 m/s headwind:
    golfsim simulate --speed 70 --angle 11 --spin 2700 --wind-speed 6 --wind-angle 180

  Carry change for a high shot in a 10 m/s tailwind:
    golfsim wind-effect --wind-speed 10 --wind-angle 0 --shot-type high
        """
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    sim_parser = subparsers.add_parser("simulate", help="Simulate one shot")
    sim_parser.add_argument("--speed", type=float, required=True, help="Ball speed (m/s)")
    sim_parser.add_argument("--angle", type=float, required=True, help="Launch angle (deg)")
    sim_parser.add_argument("--spin", type=float, required=True, help="Backspin (rpm)")
    sim_parser.add_argument("--wind-speed", type=float, default=0.0, help="Wind speed (m/s)")
    sim_parser.add_argument(
        "--wind-angle", type=float, default=0.0,
        help="Wind angle (deg, 0 tailwind, 180 headwind)"
    )
    sim_parser.add_argument("--tilt", type=float, default=0.0, help="Spin axis tilt (deg)")
    sim_parser.add_argument("--points", action="store_true", help="Print trajectory points")

    effect_parser = subparsers.add_parser("wind-effect", help="Estimate wind effect on carry")
    effect_parser.add_argument("--wind-speed", type=float, required=True, help="Wind speed (m/s)")
    effect_parser.add_argument("--wind-angle", type=float, required=True, help="Wind angle (deg)")
    effect_parser.add_argument(
        "--shot-type", choices=["low", "normal", "high"], default="normal", help="Shot height"
    )

    stats_parser = subparsers.add_parser("stats", help="Historical weather for a location")
    stats_parser.add_argument("--lat", type=float, required=True)
    stats_parser.add_argument("--lon", type=float, required=True)
    stats_parser.add_argument("--month", type=int, required=True, choices=range(1, 13))

    clear_parser = subparsers.add_parser("clear-old", help="Delete old observations")
    clear_parser.add_argument("--days", type=int, default=30, help="Keep this many days")

    args = parser.parse_args(argv)
    get_settings().configure_logging()

    commands = {
        "simulate": simulate,
        "wind-effect": wind_effect,
        "stats": stats,
        "clear-old": clear_old,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(1)

    try:
        command(args)
    except GolfSimError as e:
        print(f"\nError: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
