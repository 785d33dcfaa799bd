"""Load a TopologySpec from a YAML or JSON file."""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from pmstack.errors import ConfigurationError
from pmstack.models import TopologySpec

logger = logging.getLogger(__name__)


def load_topology_spec(path: Path | str) -> TopologySpec:
    """Parse a topology file. YAML is a superset of JSON, so both work."""
    spec_path = Path(path)
    with open(spec_path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Cannot parse {spec_path}: {e}") from e

    try:
        spec = TopologySpec.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid topology spec in {spec_path}: {e}") from e

    logger.info("Loaded topology spec %s from %s", spec.name, spec_path)
    return spec
