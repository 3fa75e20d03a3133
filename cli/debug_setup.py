"""Debug console setup for CLI"""

from rich.console import Console
from utils.debug_console import configure_logging, create_debug_console


def setup_debug_console(debug: bool, api_url: str) -> Console:
    """
    Configure logging and return the console the CLI should print to

    Args:
        debug: Whether debug mode is enabled
        api_url: The API base URL in use, recorded in the debug log

    Returns:
        Console instance (either regular or debug-enabled)
    """
    debug_logger = configure_logging(debug=debug)
    if not debug_logger:
        return Console()

    console = create_debug_console(debug_enabled=True, debug_logger=debug_logger)
    debug_logger.debug("[CLI] ===== CLI SESSION STARTED =====")
    debug_logger.debug(f"[CLI] API base URL: {api_url}")
    return console
