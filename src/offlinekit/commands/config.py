"""Config commands -- view and modify global configuration.

Provides the ``offlinekit config`` sub-command group for reading, updating
and resetting the user's global configuration file
(:class:`~offlinekit.models.GlobalConfig`): base URL, cache and retry
policies, queue backend, request settings, output format and feature flags.
"""

from __future__ import annotations

from typing import Any

import typer

from offlinekit.commands.runtime import get_config, is_forced
from offlinekit.exit_codes import EXIT_INVALID_USAGE
from offlinekit.flags import FeatureFlags
from offlinekit.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    effective: bool = typer.Option(
        False, "--effective", help="Show the config after project, env and CLI overrides."
    ),
) -> None:
    """Show the global configuration.

    Example::

        offlinekit config show
        offlinekit --json config show --effective
    """
    from offlinekit.config import get_config_dir, load_global_config

    config = get_config(ctx) if effective else load_global_config()
    data = config.model_dump(mode="json")
    if effective:
        data["features"] = FeatureFlags(config.features).all()
    info(f"Config directory: {get_config_dir()}")
    format_response(data)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'retry.max_retries')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to the type of
    the value it replaces (bool, int, float or str), and the result is
    validated against :class:`~offlinekit.models.GlobalConfig` before
    saving.

    Raises:
        typer.Exit: With code 2 if the key path is invalid, the value
            cannot be coerced, or validation fails.

    Example::

        offlinekit config set base_url https://api.example.com
        offlinekit config set queue.backend diskcache
        offlinekit config set cache.ttl_seconds 60
        offlinekit config set features.offline_networking false
    """
    from offlinekit.config import load_global_config, save_global_config
    from offlinekit.models import GlobalConfig

    config = load_global_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target:
        # ``features`` is an open table of flags; missing ones read as defaults.
        if keys[:-1] != ["features"]:
            error(f"Unknown config key: {key}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        target[final_key] = FeatureFlags().is_enabled(final_key)

    try:
        coerced = _coerce(target[final_key], value)
    except ValueError:
        error(f"Expected {type(target[final_key]).__name__} for {key}, got: {value}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset configuration to defaults.

    Asks for confirmation unless ``--force`` is active.

    Example::

        offlinekit --force config reset
    """
    from offlinekit.config import save_global_config
    from offlinekit.models import GlobalConfig

    if not is_forced(ctx):
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")


def _coerce(current: Any, value: str) -> Any:  # noqa: ANN401
    """Convert *value* to the type of *current*.

    ``none`` / ``null`` clear an optional setting; validation rejects them
    for required ones.

    Raises:
        ValueError: If *value* does not parse as the required type.
    """
    if value.lower() in ("none", "null"):
        return None
    if current is None:
        return value
    if isinstance(current, bool):
        lowered = value.lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
        raise ValueError(value)
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    return value
