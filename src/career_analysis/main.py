"""
Command-line entry point for running a single career analysis.

The profile is read from a YAML (or JSON) file using the camelCase field
names of the web form, analyzed with the configured LLM, and the resulting
payload is printed or written as JSON. Nothing is persisted.

Execution:
    $ python -m src.career_analysis.main --profile profile.yaml
    $ python -m src.career_analysis.main --profile profile.yaml --output analysis.json
"""

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from .. import constants
from .models import UserProfile
from .requester import AnalysisGenerationError, CareerAnalysisRequester, LLMConfig
from .utils.data_utils import load_config

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(
    constants.PROJECT_ROOT, constants.CONFIG_DIR, constants.CAREER_GAP_CONFIG_FILENAME
)


def main(argv: Optional[List[str]] = None) -> int:
    """Parses command-line arguments and runs one analysis."""
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
    )
    logging.getLogger("google.api_core").setLevel(logging.ERROR)
    logging.getLogger("absl").setLevel(logging.ERROR)

    parser = argparse.ArgumentParser(
        description="Generate an LLM-based career analysis for one profile."
    )
    parser.add_argument(
        "--profile", type=str, required=True, help="Path to the profile YAML file."
    )
    parser.add_argument(
        "--config",
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help="Path to the application configuration file.",
    )
    parser.add_argument(
        "--output", type=str, help="Write the analysis JSON to this file."
    )
    args = parser.parse_args(argv)

    try:
        llm_config = LLMConfig(**load_config(args.config).get("llm", {}))
        profile = UserProfile.model_validate(load_config(args.profile))
        requester = CareerAnalysisRequester(llm_config)
    except (ValueError, RuntimeError, FileNotFoundError) as e:
        # pydantic's ValidationError is a ValueError subclass.
        logger.critical(f"Initialization Error: {e}")
        return 1

    try:
        analysis = requester.generate_analysis(profile)
    except AnalysisGenerationError as e:
        logger.error(str(e))
        return 1

    output_json = json.dumps(analysis.to_document(), indent=2, ensure_ascii=False)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output_json)
        logger.info(f"Analysis saved to: {args.output}")
    else:
        print(output_json)
    return 0


if __name__ == "__main__":
    sys.exit(main())
