"""
Parameter file handling.

A parameter file holds key=value lines, e.g.

    indexPath=INPUT_DIR/index
    queryFilePath=queries.txt
    trecEvalOutputPath=output.teIn
    retrievalAlgorithm=BM25
    BM25:k_1=1.2
    BM25:k_3=0
    BM25:b=0.75
"""

from pathlib import Path
from typing import Dict
import logging

from omegaconf import DictConfig, OmegaConf

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ('indexPath', 'queryFilePath', 'trecEvalOutputPath', 'retrievalAlgorithm')

# Parameter file key -> config path
KEY_MAP = {
    'indexPath': 'paths.index',
    'queryFilePath': 'paths.queries',
    'trecEvalOutputPath': 'paths.output',
    'trecEvalOutputLength': 'output.length',
    'retrievalAlgorithm': 'model.name',
    'BM25:k_1': 'model.bm25.k1',
    'BM25:k_3': 'model.bm25.k3',
    'BM25:b': 'model.bm25.b',
    'Indri:mu': 'model.indri.mu',
    'Indri:lambda': 'model.indri.lambda',
}

MODEL_KEYS = {
    'bm25': ('BM25:k_1', 'BM25:k_3', 'BM25:b'),
    'indri': ('Indri:mu', 'Indri:lambda'),
}


def read_parameter_file(parameter_file: str) -> Dict[str, str]:
    """
    Read and validate a key=value parameter file.

    Args:
        parameter_file: Path to the parameter file

    Returns:
        Mapping of parameter names to raw string values

    Raises:
        ConfigurationError: Unreadable file, malformed line, unknown key,
                            or missing required key
    """
    path = Path(parameter_file)
    if not path.is_file():
        raise ConfigurationError(f"Can't read {parameter_file}")

    parameters: Dict[str, str] = {}

    with open(path, 'r', encoding='utf-8') as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith('#'):
                continue

            if '=' not in line:
                raise ConfigurationError(f"{parameter_file}:{line_no}: expected key=value, got '{line}'")

            key, value = line.split('=', 1)
            key, value = key.strip(), value.strip()

            if key not in KEY_MAP:
                raise ConfigurationError(f"{parameter_file}:{line_no}: unknown parameter '{key}'")

            parameters[key] = value

    validate_parameters(parameters)
    logger.info(f"Read {len(parameters)} parameters from {parameter_file}")
    return parameters


def validate_parameters(parameters: Dict[str, str]):
    """
    Check required and model-specific keys are present.

    Raises:
        ConfigurationError: If any required key is missing
    """
    missing = [key for key in REQUIRED_KEYS if not parameters.get(key)]
    if missing:
        raise ConfigurationError(f"Required parameters were missing from the parameter file: {', '.join(missing)}")

    model_name = parameters['retrievalAlgorithm'].lower()
    missing = [key for key in MODEL_KEYS.get(model_name, ()) if not parameters.get(key)]
    if missing:
        raise ConfigurationError(
            f"Retrieval model {parameters['retrievalAlgorithm']} requires: {', '.join(missing)}"
        )


def parse_output_length(value) -> int:
    """
    Parse the number of results to write per query.

    Raises:
        ConfigurationError: If the value is not an integer
    """
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise ConfigurationError(f"trecEvalOutputLength must be an integer, got {value!r}")


def apply_parameters(config: DictConfig, parameters: Dict[str, str]) -> DictConfig:
    """
    Merge parameter file values into a composed configuration.

    Args:
        config: Base configuration (from Hydra)
        parameters: Validated parameter file values

    Returns:
        New merged configuration
    """
    overlay = OmegaConf.create({})
    for key, value in parameters.items():
        OmegaConf.update(overlay, KEY_MAP[key], value, force_add=True)

    if 'trecEvalOutputLength' in parameters:
        overlay.output.length = parse_output_length(parameters['trecEvalOutputLength'])

    return OmegaConf.merge(config, overlay)
