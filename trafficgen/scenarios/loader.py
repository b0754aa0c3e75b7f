"""Load scenario definitions from YAML."""

from pathlib import Path
from typing import IO

import structlog
import yaml
from pydantic import ValidationError

from trafficgen.errors import ScenarioFileError

from .models import Scenario, ScenarioFile

logger = structlog.get_logger()


def load_scenario_file(source: str | Path | IO[str]) -> ScenarioFile:
    """Parse a scenario YAML document from a path or an open text stream.

    Expected layout::

        scenarios:
          - name: ping
            url: https://example.com
            throughput: 1
            period: 10
            validates:
              - name: status_code=200
                status_code: 200
            disable_keepalive: false
            keepalive: 10
            idle_timeout: 10

    Each entry is validated on its own. An invalid entry lands in
    ``ScenarioFile.rejected`` keyed by its name so it can be reported
    without holding back the others. Only an unreadable or malformed
    document raises ``ScenarioFileError``.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            with open(path, encoding="utf-8") as f:
                raw = yaml.safe_load(f)
        except OSError as exc:
            raise ScenarioFileError(f"cannot read scenario file {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ScenarioFileError(f"invalid YAML in {path}: {exc}") from exc
        origin = str(path)
    else:
        try:
            raw = yaml.safe_load(source)
        except yaml.YAMLError as exc:
            raise ScenarioFileError(f"invalid YAML: {exc}") from exc
        origin = getattr(source, "name", "<stream>")

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ScenarioFileError(f"{origin}: top level must be a mapping")

    entries = raw.get("scenarios") or []
    if not isinstance(entries, list):
        raise ScenarioFileError(f"{origin}: scenarios must be a list")

    scenarios: list[Scenario] = []
    rejected: dict[str, str] = {}
    for index, entry in enumerate(entries):
        try:
            scenarios.append(Scenario.model_validate(entry))
        except ValidationError as exc:
            name = _entry_name(entry, index)
            if name in rejected:
                raise ScenarioFileError(f"{origin}: duplicate scenario name: {name}") from exc
            rejected[name] = _summarize(exc)
            logger.warning(
                "scenario_rejected", source=origin, scenario=name, error=rejected[name]
            )

    try:
        scenario_file = ScenarioFile(scenarios=scenarios, rejected=rejected)
    except ValidationError as exc:
        raise ScenarioFileError(f"{origin}: {exc}") from exc

    logger.info(
        "scenario_file_loaded",
        source=origin,
        scenarios=len(scenario_file.scenarios),
        rejected=len(scenario_file.rejected),
    )
    return scenario_file


def _entry_name(entry: object, index: int) -> str:
    if isinstance(entry, dict) and isinstance(entry.get("name"), str) and entry["name"]:
        return entry["name"]
    return f"scenarios[{index}]"


def _summarize(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error["loc"])
        parts.append(f"{loc}: {error['msg']}" if loc else error["msg"])
    return "; ".join(parts)
