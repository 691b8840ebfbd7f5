"""Main pipeline implementation for pathway enrichment and depletion analysis."""

import json
import logging
import os
import platform
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from functools import partial
from pathlib import Path
from typing import Dict, Optional

from tqdm.auto import tqdm

# Configure tqdm to work properly on macOS
is_mac = platform.system() == 'Darwin'
tqdm_kwargs = {
    'position': 0,
    'leave': True,
    'ncols': 100,
    'dynamic_ncols': True,
    'ascii': is_mac,
}

from pathfisher.catalog import PathwayCatalog
from pathfisher.config import PipelineConfig
from pathfisher.cytoscape import plot_femap
from pathfisher.data import load_gene_lists, prepare_universe, read_pathways, write_pathways
from pathfisher.export import write_femap, write_results
from pathfisher.results import ResultTable, assemble_results
from pathfisher.stats import (
    ContingencyTable,
    PathwayIndex,
    benjamini_hochberg,
    fisher_pvalues,
    fold_enrichments,
)
from pathfisher.universe import GeneSet, GeneUniverse
from pathfisher.utils import ensure_dir, safe_filenames

logger = logging.getLogger(__name__)


def analyse_test_set(
    test_set: GeneSet,
    catalog: PathwayCatalog,
    background: GeneSet,
    delimiter: Optional[str] = "%",
    index: Optional[PathwayIndex] = None,
) -> ResultTable:
    """
    Test every catalog pathway for enrichment and depletion in one test set.

    Args:
        test_set: Foreground gene set, a subset of the background
        catalog: Pathways to test
        background: Background gene set
        delimiter: Pathway id delimiter used to derive descriptions
        index: Prebuilt pathway index over the background, built if omitted

    Returns:
        ResultTable with one enrichment and one depletion row per pathway
    """
    if index is None:
        index = PathwayIndex(catalog, background)

    a, b, c, d = index.contingency_arrays(test_set)
    tables = [ContingencyTable(int(ai), int(bi), int(ci), int(di)) for ai, bi, ci, di in zip(a, b, c, d)]

    enrichment_p, depletion_p = fisher_pvalues(a, b, c, d)
    fold = fold_enrichments(a, b, c, d)

    # Each direction is corrected on its own over the whole catalog
    enrichment_q = benjamini_hochberg(enrichment_p)
    depletion_q = benjamini_hochberg(depletion_p)

    overlaps = [tuple(sorted(pathway.genes & test_set.members)) for pathway in catalog]
    return assemble_results(
        test_set.name,
        catalog,
        tables,
        fold,
        (enrichment_p, enrichment_q),
        (depletion_p, depletion_q),
        overlaps=overlaps,
        delimiter=delimiter,
    )


def _process_test_set(name: str, universe: GeneUniverse, catalog: PathwayCatalog,
                      delimiter: Optional[str]) -> ResultTable:
    """Worker entry point: analyse one named test set."""
    return analyse_test_set(universe[name], catalog, universe.background, delimiter=delimiter)


def run_enrichment(
    universe: GeneUniverse,
    catalog: PathwayCatalog,
    num_threads: int = 1,
    delimiter: Optional[str] = "%",
) -> Dict[str, ResultTable]:
    """
    Run enrichment and depletion tests for every test set of a universe.

    Args:
        universe: Validated background and test sets
        catalog: Validated pathway catalog
        num_threads: Number of worker processes; 1 runs sequentially
        delimiter: Pathway id delimiter used to derive descriptions

    Returns:
        Result tables keyed by test set name, in universe order
    """
    names = universe.names
    num_threads = max(1, min(len(names), num_threads))
    logger.info(f"Testing {len(catalog)} pathways against {len(names)} test set(s) "
                f"using {num_threads} worker(s)")

    results: Dict[str, ResultTable] = {}
    if num_threads > 1:
        process_func = partial(_process_test_set, universe=universe, catalog=catalog, delimiter=delimiter)
        with ProcessPoolExecutor(max_workers=num_threads) as executor:
            futures = {executor.submit(process_func, name): name for name in names}
            with tqdm(total=len(futures), desc="Testing gene sets", unit="set", **tqdm_kwargs) as pbar:
                for future in as_completed(futures):
                    name = futures[future]
                    try:
                        results[name] = future.result()
                    except Exception as e:
                        logger.error(f"Error processing test set '{name}': {str(e)}")
                        for pending in futures:
                            pending.cancel()
                        raise
                    pbar.update(1)
    else:
        index = PathwayIndex(catalog, universe.background)
        with tqdm(total=len(names), desc="Testing gene sets", unit="set", **tqdm_kwargs) as pbar:
            for test_set in universe:
                results[test_set.name] = analyse_test_set(
                    test_set, catalog, universe.background, delimiter=delimiter, index=index
                )
                pbar.update(1)

    # Workers finish in any order; report in universe order
    return {name: results[name] for name in names}


class PathwayEnrichmentPipeline:
    """Main class for running pathway enrichment and depletion analysis."""

    def __init__(self, config_path: str):
        """Initialise the pipeline with a configuration file.

        Args:
            config_path: Path to the TOML configuration file
        """
        self.config = PipelineConfig(config_path)
        self.logger = logging.getLogger(__name__)
        self._load_input_data()

    def _load_input_data(self):
        """Load and validate input data files."""
        self.logger.debug("Starting to load input data files")

        for file_key, file_path in self.config.input_files.items():
            if isinstance(file_path, (str, bytes, os.PathLike)) and not Path(file_path).is_file():
                error_msg = f"Input file not found: {file_path} (specified as {file_key})"
                self.logger.error(error_msg)
                raise FileNotFoundError(error_msg)

        self.catalog = read_pathways(
            self.config.input_files['pathways_file'],
            min_genes=self.config.min_genes,
            max_genes=self.config.max_genes,
        )
        self.gene_lists = load_gene_lists(self.config.input_files['gene_lists_file'])
        self.universe = prepare_universe(self.gene_lists)
        # Output files are named after test sets, so names must stay distinct on disk
        safe_filenames(self.universe.names)

        self.logger.info(f"Loaded {len(self.catalog)} pathways")
        self.logger.info(f"Analysing {len(self.universe)} test set(s): {', '.join(self.universe.names)}")
        self.logger.debug("Finished loading input data files")

    def run(self) -> Dict[str, ResultTable]:
        """Run the pathway enrichment analysis pipeline."""
        self.logger.info("Starting pathway enrichment analysis pipeline")
        start_time = time.time()

        self.results = run_enrichment(
            self.universe,
            self.catalog,
            num_threads=self.config.num_threads,
            delimiter=self.config.description_delimiter,
        )

        cutoff = self.config.qvalue_cutoff
        for name, table in self.results.items():
            significant = table.significant(cutoff)
            self.logger.info(
                f"  {name}: {len(significant.by_status('enriched'))} enriched, "
                f"{len(significant.by_status('depleted'))} depleted pathways at qvalue <= {cutoff}"
            )
            degenerate = sum(row.degenerate for row in table) // 2
            if degenerate:
                self.logger.warning(f"  {name}: fold enrichment undefined for {degenerate} pathway(s)")

        elapsed_time = time.time() - start_time
        self.logger.info(f"Pipeline completed in {elapsed_time:.2f} seconds")
        return self.results

    def save_results(self, output_dir: Optional[str] = None):
        """Save analysis results.

        Args:
            output_dir: Optional output directory path. If not provided,
                        uses the directory from the configuration.
        """
        if not hasattr(self, 'results'):
            self.logger.warning("No results to save. Run the pipeline first.")
            return

        output_path = Path(output_dir) if output_dir is not None else self.config.get_output_path()
        data_path = ensure_dir(output_path / 'data')
        femap_path = ensure_dir(data_path / 'femap')
        plots_path = ensure_dir(output_path / 'plots')

        # 1. Result tables and EnrichmentMap generic results files
        write_results(self.results, data_path)
        write_femap(self.results, femap_path)

        # 2. Pathways actually tested, as GMT for EnrichmentMap
        gmt_file = write_pathways(self.catalog, data_path / 'pathways.gmt')

        # 3. Dot plots
        self._save_dotplots(plots_path)

        # 4. Pipeline configuration
        config_file = data_path / 'pipeline_config.json'
        with open(config_file, 'w') as f:
            config_dict = {
                'input_files': {k: str(v) for k, v in self.config.input_files.items()
                                if isinstance(v, (str, bytes, os.PathLike))},
                'output': self.config.output_config,
                'analysis': self.config.analysis_params,
                'femap': self.config.femap_config,
                'num_threads': self.config.num_threads,
            }
            json.dump(config_dict, f, indent=2)
        self.logger.info(f"Saved configuration to {config_file}")

        # 5. README
        readme_file = output_path / 'README.md'
        with open(readme_file, 'w') as f:
            f.write("# Pathway Enrichment Analysis Results\n\n")
            f.write(f"Analysis completed on {time.strftime('%Y-%m-%d %H:%M:%S')}\n\n")
            f.write("## Files\n\n")
            f.write("- `data/results_<set>.tsv`: Enrichment and depletion results per test set\n")
            f.write("- `data/femap/femap_<set>.txt`: EnrichmentMap generic results files (status +1/-1)\n")
            f.write("- `data/pathways.gmt`: Pathways tested, in GMT format\n")
            f.write("- `data/pipeline_config.json`: Configuration used for this analysis\n")
            f.write("- `plots/dotplot_<set>.<format>`: Dot plots of significant pathways\n")
        self.logger.info(f"Saved README to {readme_file}")

        # 6. Optional EnrichmentMap in a running Cytoscape session
        if self.config.femap_config.get('run', False):
            params = self.config.femap_params()
            params['image_file'] = plots_path / params['image_file']
            report = plot_femap(gmt_file, femap_path, base_url=self.config.cytoscape_url, **params)
            if report.ok:
                self.logger.info(f"Saved EnrichmentMap to {report.image_file}")
            else:
                failed = report.failed_step
                self.logger.warning(f"EnrichmentMap not drawn: step '{failed.name}' failed ({failed.detail})")
            self.femap_report = report

    def _save_dotplots(self, plots_path: Path):
        import matplotlib.pyplot as plt
        from pathfisher.visualise import dotplot_data, plot_dotplot

        plot_format = self.config.output_config.get('plot_format', 'png')
        cutoff = self.config.qvalue_cutoff
        stems = safe_filenames(self.results)
        for name, table in self.results.items():
            if dotplot_data(table, cutoff).empty:
                self.logger.info(f"No significant pathways to plot for '{name}'")
                continue
            plot_file = plots_path / f"dotplot_{stems[name]}.{plot_format}"
            fig = plot_dotplot(table, plot_file, qvalue_cutoff=cutoff)
            plt.close(fig)
            self.logger.info(f"Saved dot plot to {plot_file}")
