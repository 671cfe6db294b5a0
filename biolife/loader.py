"""
YAML scenario loader with schema validation.

Loads world configuration and run scenarios from YAML files and validates
them against JSON schemas.
"""

import yaml
import json
from pathlib import Path
from typing import Dict, List, Optional
import jsonschema

from .data_types import WorldConfig, Scenario, ConfigError
from .constants import STARTING_ENERGY_DEFAULT


class DataLoadError(Exception):
    """Raised when data loading or validation fails"""
    pass


def load_yaml(file_path: Path) -> dict:
    """Load YAML file and return parsed dict"""
    if not file_path.exists():
        raise DataLoadError(f"File not found: {file_path}")

    try:
        with open(file_path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise DataLoadError(f"YAML parse error in {file_path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DataLoadError(f"Expected a mapping at top level of {file_path}")
    return data


def validate_against_schema(data: dict, schema_path: Path, data_path: Path):
    """Validate data dict against JSON schema"""
    if not schema_path.exists():
        # Schema validation optional (schemas may be absent from a data pack)
        return

    try:
        with open(schema_path, 'r') as f:
            schema = json.load(f)
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        raise DataLoadError(f"Validation error in {data_path}: {e.message}")
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Invalid JSON schema {schema_path}: {e}")


def _build_config(data: dict, file_path: Path) -> WorldConfig:
    try:
        return WorldConfig.from_dict(data)
    except (ConfigError, TypeError, ValueError) as e:
        raise DataLoadError(f"Invalid world config in {file_path}: {e}")


def load_world_config(file_path: Path, schema_dir: Optional[Path] = None) -> WorldConfig:
    """
    Load a WorldConfig from YAML.

    Accepts either a scenario file (config under a 'world' key) or a bare
    mapping of WorldConfig fields.
    """
    file_path = Path(file_path)
    data = load_yaml(file_path)
    is_scenario = 'world' in data

    if schema_dir:
        schema_name = "scenario.schema.json" if is_scenario else "world_config.schema.json"
        validate_against_schema(data, Path(schema_dir) / schema_name, file_path)

    world_data = (data['world'] or {}) if is_scenario else data
    return _build_config(world_data, file_path)


def load_scenario(file_path: Path, schema_dir: Optional[Path] = None) -> Scenario:
    """Load a run scenario (world config + initial conditions) from YAML"""
    file_path = Path(file_path)
    data = load_yaml(file_path)

    # Validate if schema available
    if schema_dir:
        schema_path = Path(schema_dir) / "scenario.schema.json"
        validate_against_schema(data, schema_path, file_path)

    config = _build_config(data.get('world', {}) or {}, file_path)

    population = data.get('population', {}) or {}

    return Scenario(
        name=data.get('name', file_path.stem),
        config=config,
        seed=int(data.get('seed', 0)),
        initial_creatures=int(population.get('creatures', 10)),
        initial_food=int(population.get('food', 50)),
        starting_energy=float(population.get('starting_energy', STARTING_ENERGY_DEFAULT)),
        genomes=list(population.get('genomes', [])),
        description=data.get('description')
    )


def load_scenario_directory(scenario_dir: Path, schema_dir: Optional[Path] = None) -> Dict[str, Scenario]:
    """Load all scenarios from directory, keyed by scenario name"""
    scenario_dir = Path(scenario_dir)
    if not scenario_dir.exists():
        raise DataLoadError(f"Scenario directory not found: {scenario_dir}")

    scenarios = {}
    for yaml_file in sorted(scenario_dir.glob("*.yaml")):
        scenario = load_scenario(yaml_file, schema_dir)
        scenarios[scenario.name] = scenario

    if not scenarios:
        raise DataLoadError(f"No scenario files found in {scenario_dir}")

    return scenarios


def list_scenarios(data_root: Path) -> List[Path]:
    """Scenario files under data_root/worlds, sorted by name"""
    return sorted((Path(data_root) / "worlds").glob("*.yaml"))
