"""Configuration handling for the pathway enrichment pipeline."""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import tomli
import tomli_w

from pathfisher.cytoscape import DEFAULT_CYREST_URL

FEMAP_DEFAULTS = {
    'run': False,
    'pvalue': 1.0,
    'qvalue': 1.0,
    'form_sim': 'COMBINED',
    'edge_sim': 0.375,
    'comb_sim': 0.5,
    'chart_data': 'NES_VALUE',
    'clust_alg': 'MCL',
    'clust_words': 3,
    'hide_node_labels': False,
    'net_name': 'generic',
    'image_file': 'femap.png',
}


class PipelineConfig:
    """Configuration class for the pathway enrichment pipeline."""

    def __init__(self, config_path: Union[str, Path]):
        """Initialise the configuration from a TOML file.

        Args:
            config_path: Path to the TOML configuration file
        """
        self.config_path = config_path

        try:
            with open(config_path, "rb") as f:
                self.config = tomli.load(f)
        except FileNotFoundError:
            raise ValueError(f"Error loading configuration file: {config_path} does not exist")
        except tomli.TOMLDecodeError as e:
            raise ValueError(f"Error loading configuration file: {str(e)}")

        required_sections = ['input', 'output', 'analysis']
        missing_sections = [section for section in required_sections if section not in self.config]
        if missing_sections:
            raise ValueError(f"Missing required sections in configuration: {', '.join(missing_sections)}")

        self.input_files = self.config.get("input", {})
        required_input_files = ['pathways_file', 'gene_lists_file']
        missing_files = [file for file in required_input_files if file not in self.input_files]
        if missing_files:
            raise ValueError(f"Missing required input files in configuration: {', '.join(missing_files)}")

        self.output_config = self.config.get("output", {})
        self.analysis_params = self.config.get("analysis", {})

        self.num_threads = self.analysis_params.get("num_threads", 1)
        if self.num_threads < 1:
            raise ValueError(f"num_threads must be at least 1, got {self.num_threads}")

        # Pathway size limits; a max of 0 means unbounded
        self.min_genes = self.analysis_params.get("min_genes", 1)
        self.max_genes = self.analysis_params.get("max_genes", 0) or None
        self.description_delimiter = self.analysis_params.get("description_delimiter", "%")

        self.qvalue_cutoff = self.analysis_params.get("qvalue_cutoff", 0.05)
        if not 0 <= self.qvalue_cutoff <= 1:
            raise ValueError(f"qvalue_cutoff must lie between 0 and 1, got {self.qvalue_cutoff}")

        self.femap_config = {**FEMAP_DEFAULTS, **self.config.get("femap", {})}
        self.cytoscape_url = self.config.get("cytoscape", {}).get("url", DEFAULT_CYREST_URL)

    def femap_params(self) -> Dict[str, Any]:
        """EnrichmentMap drawing parameters, without the ``run`` switch."""
        return {k: v for k, v in self.femap_config.items() if k != 'run'}

    def get_output_path(self, subdir: Optional[str] = None) -> Path:
        """Get the path to the output directory or a subdirectory within it.

        Args:
            subdir: Optional subdirectory name within the output directory

        Returns:
            Path object for the requested directory
        """
        base_path = Path(self.output_config.get("directory", "results"))
        if subdir:
            return base_path / subdir
        return base_path

    def save_config(self, output_path: Union[str, Path]) -> None:
        """Save the configuration to a TOML file.

        Args:
            output_path: Path to save the configuration file
        """
        with open(output_path, "wb") as f:
            tomli_w.dump(self.config, f)
