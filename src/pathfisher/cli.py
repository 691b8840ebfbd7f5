#!/usr/bin/env python3
"""
Command line interface for the pathway enrichment pipeline.
"""

import argparse
import logging
import sys
import tempfile
from pathlib import Path

import tomli
from tomli_w import dump

from pathfisher.pipeline import PathwayEnrichmentPipeline
from pathfisher.utils import setup_logging


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Test custom pathways for enrichment and depletion in gene lists"
    )

    parser.add_argument(
        "config_file",
        type=str,
        help="Path to TOML configuration file"
    )

    input_group = parser.add_argument_group("Input file overrides")
    input_group.add_argument(
        "--pathways",
        type=str,
        help="Override pathway annotation file (GMT, text table or spreadsheet)"
    )
    input_group.add_argument(
        "--gene-lists",
        type=str,
        help="Override gene lists file (must include a 'background' list)"
    )

    output_group = parser.add_argument_group("Output configuration overrides")
    output_group.add_argument(
        "--output-dir",
        type=str,
        help="Override output directory"
    )

    analysis_group = parser.add_argument_group("Analysis parameter overrides")
    analysis_group.add_argument(
        "--num-threads",
        type=int,
        help="Override number of worker processes"
    )
    analysis_group.add_argument(
        "--min-genes",
        type=int,
        help="Override minimum pathway size"
    )
    analysis_group.add_argument(
        "--max-genes",
        type=int,
        help="Override maximum pathway size (0 for no limit)"
    )
    analysis_group.add_argument(
        "--qvalue-cutoff",
        type=float,
        help="Override q-value cutoff used for reporting and plots"
    )

    femap_group = parser.add_argument_group("EnrichmentMap overrides")
    femap_group.add_argument(
        "--femap",
        action="store_true",
        help="Draw an EnrichmentMap in a running Cytoscape session"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )

    return parser.parse_args(argv)


def update_config(config: dict, args: argparse.Namespace):
    """Update configuration with command line overrides."""
    for section in ('input', 'output', 'analysis'):
        config.setdefault(section, {})

    if args.pathways:
        config['input']['pathways_file'] = args.pathways
    if args.gene_lists:
        config['input']['gene_lists_file'] = args.gene_lists

    if args.output_dir:
        config['output']['directory'] = args.output_dir

    if args.num_threads is not None:
        config['analysis']['num_threads'] = args.num_threads
    if args.min_genes is not None:
        config['analysis']['min_genes'] = args.min_genes
    if args.max_genes is not None:
        config['analysis']['max_genes'] = args.max_genes
    if args.qvalue_cutoff is not None:
        config['analysis']['qvalue_cutoff'] = args.qvalue_cutoff

    if args.femap:
        config.setdefault('femap', {})['run'] = True

    return config


def main(argv=None):
    """Main entry point for the CLI."""
    args = parse_args(argv)

    try:
        with open(args.config_file, 'rb') as f:
            config = tomli.load(f)
    except (OSError, tomli.TOMLDecodeError) as e:
        print(f"Error loading configuration file: {str(e)}", file=sys.stderr)
        sys.exit(1)

    config = update_config(config, args)

    output_dir = Path(config['output'].get('directory', 'results'))
    setup_logging(output_dir / 'logs', level=getattr(logging, args.log_level))

    logging.info("Starting pathway enrichment analysis pipeline")
    logging.info(f"Using configuration file: {args.config_file}")

    # The pipeline reads its configuration from disk, so write the overridden copy out
    with tempfile.TemporaryDirectory() as tmp_dir:
        temp_config_path = Path(tmp_dir) / "config.toml"
        with open(temp_config_path, 'wb') as f:
            dump(config, f)

        try:
            pipeline = PathwayEnrichmentPipeline(str(temp_config_path))
            pipeline.run()
            pipeline.save_results()
        except (FileNotFoundError, ValueError) as e:
            logging.error(f"Pipeline execution failed: {str(e)}")
            sys.exit(1)

    logging.info("Pipeline execution completed successfully")


if __name__ == "__main__":
    main()
