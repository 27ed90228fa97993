"""
Configuration loader with validation.

Builds GameIdentifierConfig from environment variables and an optional
``.env`` file.
"""
from dotenv import load_dotenv

from .config import GameIdentifierConfig
from .config_validator import (
    get_bool_env,
    get_float_env,
    get_int_env,
    get_optional_env,
    get_required_env,
    validate_path,
)

_DEFAULTS = GameIdentifierConfig()


def load_config_from_env(load_env_file: bool = True) -> GameIdentifierConfig:
    """
    Load configuration from environment variables with validation.

    Usage:
        config = load_config_from_env()
        app = GameIdentifierApp(config)
        app.initialize()

    :param load_env_file: Read ``.env`` from the working directory first
    :return: Validated GameIdentifierConfig instance
    :raises: ConfigurationError if values are missing or invalid
    """
    if load_env_file:
        load_dotenv()

    enable_bgg_details = get_bool_env("ENABLE_BGG_DETAILS", _DEFAULTS.enable_bgg_details)

    config = GameIdentifierConfig(
        catalog_csv_path=get_optional_env("CATALOG_CSV_PATH"),
        catalog_max_rank=get_int_env("CATALOG_MAX_RANK", None),
        games_collection=get_optional_env("GAMES_COLLECTION", _DEFAULTS.games_collection),
        name_field=get_optional_env("GAMES_NAME_FIELD", _DEFAULTS.name_field),
        catalog_indexed=get_bool_env("CATALOG_INDEXED", _DEFAULTS.catalog_indexed),
        scan_limit=get_int_env("CATALOG_SCAN_LIMIT", _DEFAULTS.scan_limit),
        stem_widening=get_bool_env("STEM_WIDENING", _DEFAULTS.stem_widening),
        result_limit=get_int_env("RESULT_LIMIT", _DEFAULTS.result_limit),
        correction_limit=get_int_env("CORRECTION_LIMIT", _DEFAULTS.correction_limit),
        fuzzy_threshold=get_float_env("FUZZY_THRESHOLD", _DEFAULTS.fuzzy_threshold),
        fuzzy_prefix_threshold=get_float_env(
            "FUZZY_PREFIX_THRESHOLD", _DEFAULTS.fuzzy_prefix_threshold
        ),
        query_timeout=get_float_env("CATALOG_QUERY_TIMEOUT", _DEFAULTS.query_timeout),
        search_timeout=get_float_env("SEARCH_TIMEOUT", _DEFAULTS.search_timeout),
        detail_timeout=get_float_env("DETAIL_TIMEOUT", _DEFAULTS.detail_timeout),
        stagger_initial_ms=get_int_env("STAGGER_INITIAL_MS", _DEFAULTS.stagger_initial_ms),
        stagger_step_ms=get_int_env("STAGGER_STEP_MS", _DEFAULTS.stagger_step_ms),
        inter_job_pause_ms=get_int_env("INTER_JOB_PAUSE_MS", _DEFAULTS.inter_job_pause_ms),
        circuit_failure_threshold=get_int_env(
            "CIRCUIT_FAILURE_THRESHOLD", _DEFAULTS.circuit_failure_threshold
        ),
        circuit_reset_seconds=get_float_env(
            "CIRCUIT_RESET_SECONDS", _DEFAULTS.circuit_reset_seconds
        ),
        enable_bgg_details=enable_bgg_details,
        bgg_api_base=get_optional_env("BGG_API_BASE", _DEFAULTS.bgg_api_base),
        bgg_api_token=get_optional_env("BGG_API_TOKEN"),
        log_level=get_optional_env("LOG_LEVEL", _DEFAULTS.log_level).upper(),
    )

    if config.catalog_csv_path:
        validate_path(config.catalog_csv_path, "CATALOG_CSV_PATH", must_exist=True)

    if get_bool_env("BGG_REQUIRE_TOKEN", False):
        config.bgg_api_token = get_required_env(
            "BGG_API_TOKEN",
            description="BoardGameGeek XML API bearer token",
        )

    return config.validate()
