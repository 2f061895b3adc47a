"""CLI: fetch a daily forecast, journal it, and print the response."""

from __future__ import annotations

import argparse
import sys
import uuid

from rich.console import Console
from rich.table import Table

from .codec import dumps_response
from .config import SUPPORTED_UNITS, Settings, load_settings
from .exceptions import ConfigError, ForecastCodecError, JournalError, WeatherProviderError
from .journal import ForecastJournal
from .log_setup import setup_logger
from .models import WeatherForecastRequest, WeatherForecastResponse
from .weather.open_meteo import OpenMeteoWeatherProvider


def parse_args() -> argparse.Namespace:
    """Parse forecast CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Fetch a daily weather forecast and print or journal the response."
    )
    parser.add_argument("--location", type=str, default=None, help="Place name to geocode.")
    parser.add_argument("--lat", type=float, default=None, help="Latitude.")
    parser.add_argument("--lon", type=float, default=None, help="Longitude.")
    parser.add_argument("--days", type=int, default=None, help="Number of forecast days.")
    parser.add_argument(
        "--units",
        choices=sorted(SUPPORTED_UNITS),
        default=None,
        help="Unit system for temperatures.",
    )
    parser.add_argument(
        "--max-print",
        type=int,
        default=None,
        help="Number of forecast days to print.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the encoded JSON response instead of a table.",
    )
    return parser.parse_args()


def _build_request(args: argparse.Namespace, settings: Settings) -> WeatherForecastRequest:
    if args.max_print is not None and args.max_print <= 0:
        raise WeatherProviderError("--max-print must be > 0 when provided.")

    has_coords = args.lat is not None or args.lon is not None
    if args.location and has_coords:
        raise WeatherProviderError("Use either --location or --lat/--lon, not both.")

    location = args.location
    if location is None and not has_coords:
        location = settings.weather_default_location
    if location is None and (args.lat is None or args.lon is None):
        raise WeatherProviderError(
            "Missing location input: pass --location, --lat and --lon, "
            "or set WEATHER_DEFAULT_LOCATION."
        )

    return WeatherForecastRequest(
        location=location,
        latitude=args.lat,
        longitude=args.lon,
        days=args.days if args.days is not None else settings.weather_default_days,
        units=args.units or settings.weather_default_units,
    )


def _print_response_table(
    console: Console, response: WeatherForecastResponse, max_print: int
) -> None:
    days = response.daily_forecast or []
    console.print(
        f"location={response.location or 'unknown'} units={response.units or '-'} "
        f"days={len(days)}"
    )
    if not days:
        console.print("No forecast days found.")
        return

    degree = "°F" if response.units == "imperial" else "°C"
    table = Table(title="Daily Forecast")
    table.add_column("Date")
    table.add_column("High")
    table.add_column("Low")
    table.add_column("Precip %")
    table.add_column("Summary", overflow="fold")

    for day in days[:max_print]:
        table.add_row(
            day.date.isoformat(),
            f"{day.temperature_max:g}{degree}" if day.temperature_max is not None else "-",
            f"{day.temperature_min:g}{degree}" if day.temperature_min is not None else "-",
            (
                f"{day.precipitation_probability:g}"
                if day.precipitation_probability is not None
                else "-"
            ),
            day.summary or "-",
        )
    console.print(table)


def main() -> int:
    """Run the forecast fetch flow."""
    args = parse_args()
    logger = setup_logger()
    console = Console()
    session_id = uuid.uuid4().hex[:12]
    journal: ForecastJournal | None = None

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        return 2
    logger.setLevel(settings.log_level)

    try:
        journal = ForecastJournal(
            journal_dir=settings.journal_dir,
            raw_payload_dir=settings.weather_raw_payload_dir,
            session_id=session_id,
            journal_raw_payloads=settings.weather_journal_raw_payloads,
        )
        journal.write_event(
            "forecast_startup",
            payload={
                "provider": OpenMeteoWeatherProvider.provider_name,
                "config": settings.safe_summary(),
            },
        )
    except JournalError as exc:
        logger.error("Failed to initialize forecast journal: %s", exc)
        return 3

    exit_code = 0
    try:
        request = _build_request(args, settings)
        journal.write_event("forecast_request_start", payload=request.model_dump(mode="json"))

        with OpenMeteoWeatherProvider(settings=settings, logger=logger) as provider:
            fetch_result = provider.fetch_for_request(request)

        journal.record_fetch(fetch_result)
        response = fetch_result.response
        day_count = len(response.daily_forecast or [])
        journal.write_event(
            "forecast_request_success",
            payload={
                "location": response.location,
                "units": response.units,
                "day_count": day_count,
            },
        )
        logger.info(
            "Forecast fetched",
            extra={
                "session_id": session_id,
                "provider": OpenMeteoWeatherProvider.provider_name,
                "location": response.location,
                "units": response.units,
                "days": day_count,
            },
        )

        if args.json:
            console.print_json(dumps_response(response))
        else:
            max_print = args.max_print or settings.weather_max_print
            _print_response_table(console, response=response, max_print=max_print)
    except (WeatherProviderError, ForecastCodecError, JournalError) as exc:
        exit_code = 4
        logger.error("Forecast fetch failure: %s", exc, extra={"session_id": session_id})
        try:
            journal.write_event("forecast_request_failure", payload={"error": str(exc)})
        except JournalError:
            logger.error("Failed to write forecast_request_failure event.")
    except Exception as exc:
        exit_code = 99
        logger.exception("Unexpected forecast CLI failure: %s", exc)
        try:
            journal.write_event(
                "forecast_request_failure_unhandled",
                payload={"error": str(exc), "type": type(exc).__name__},
            )
        except JournalError:
            logger.error("Failed to write forecast_request_failure_unhandled event.")
    finally:
        if journal is not None:
            try:
                journal.write_event("forecast_shutdown", payload={"exit_code": exit_code})
            except JournalError:
                logger.error("Failed to write forecast_shutdown event.")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
