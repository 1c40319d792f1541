"""
Utility functions shared by the scoring modules and their CLI commands:
JSON file loading, formatted output of results, and the arithmetic
helpers the scoring formulas rely on.
"""

import json
import math
import logging
from typing import Any, Dict, List, Union
from rich.console import Console
from rich.json import JSON
from pydantic import BaseModel

# Get a logger instance for this specific file


logger = logging.getLogger(__name__)

# Initialize a single console instance, primarily for beautiful user-facing output.


console = Console()


def round_half_up(value: float) -> int:
    """
    Rounds .5 away from zero for non-negative values.

    Python's built-in round() uses banker's rounding (round(2.5) == 2), which
    would shift composites that land exactly on a half point.
    """
    return int(math.floor(value + 0.5))


def plural(count: int, singular: str, plural_form: str | None = None) -> str:
    """Returns the singular or plural noun for a count (no number included)."""
    if count == 1:
        return singular
    return plural_form if plural_form is not None else f"{singular}s"


def to_jsonable(data: Union[BaseModel, List[Any], Dict[str, Any]]) -> Any:
    """Dumps models (and lists of models) using their camelCase aliases."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, list):
        return [to_jsonable(item) for item in data]
    if isinstance(data, dict):
        return {key: to_jsonable(value) for key, value in data.items()}
    return data


def load_json_file(path: str) -> Any:
    """
    Reads a JSON document from disk.

    Raises:
        FileNotFoundError: If the path does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    logger.debug("Loading JSON input from %s", path)
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def save_or_print_results(data: Any, output_file: str | None) -> None:
    """
    Handles the output of computed results.

    This function saves the provided data to a JSON file if an output path is given.
    Otherwise, it prints the data to the console in a formatted and
    syntax-highlighted way using the rich library.

    Args:
        data: A model, a list of models or plain JSON-compatible data.
        output_file (str | None): The file path to save the JSON output.
                                  If None, prints to the console.
    """
    json_str = json.dumps(to_jsonable(data), indent=4, ensure_ascii=False, default=str)

    if output_file:
        logger.info("Saving results to %s", output_file)
        try:
            with open(output_file, "w", encoding="utf-8") as f:
                f.write(json_str)
            console.print(f"[bold green]Successfully saved to {output_file}[/bold green]")
        except OSError as e:
            logger.error("Error saving file to %s: %s", output_file, e)
            raise
    else:
        console.print(JSON(json_str))
