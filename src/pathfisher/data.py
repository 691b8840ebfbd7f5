"""
Readers and writers for pathway annotations and gene lists.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd
import polars as pl

from pathfisher.catalog import Pathway, PathwayCatalog
from pathfisher.errors import MalformedPathwayError
from pathfisher.universe import GeneUniverse

logger = logging.getLogger(__name__)

ColumnRef = Union[int, str]

GMT_SUFFIXES = {'.gmt'}
TABLE_SUFFIXES = {'.txt', '.tsv', '.csv'}
EXCEL_SUFFIXES = {'.xlsx', '.xls'}


def _catalog_from_pairs(pairs: Iterable[Tuple[Optional[str], Optional[str]]], source) -> PathwayCatalog:
    """Group (pathway, gene) pairs into a catalog, keeping first-seen pathway order."""
    grouped: Dict[str, List[str]] = {}
    skipped = 0
    for pathway_id, gene in pairs:
        pathway_id = str(pathway_id).strip() if pathway_id is not None else ''
        gene = str(gene).strip() if gene is not None else ''
        if not pathway_id or not gene:
            skipped += 1
            continue
        grouped.setdefault(pathway_id, []).append(gene)

    if skipped:
        logger.warning(f"Skipped {skipped} rows with a missing pathway or gene in {source}")

    return PathwayCatalog(Pathway(id=pathway_id, genes=genes) for pathway_id, genes in grouped.items())


def read_gmt(file_path: Union[str, Path]) -> PathwayCatalog:
    """
    Read pathways from a GMT file.

    Each line holds a pathway id, a description and its member genes, all
    tab-separated. Lines with fewer than two non-empty fields, or without any
    gene, are skipped with a warning.

    Args:
        file_path: Path to GMT file

    Returns:
        PathwayCatalog in file order
    """
    pathways = []
    with open(file_path, 'r') as f:
        for line_no, line in enumerate(f, start=1):
            fields = [field.strip() for field in line.rstrip('\r\n').split('\t')]
            if len([field for field in fields if field]) < 2:
                if line.strip():
                    logger.warning(f"Skipping malformed line {line_no} in {file_path}: fewer than 2 fields")
                continue

            pathway_id, description, genes = fields[0], fields[1], fields[2:]
            try:
                pathways.append(Pathway(id=pathway_id, genes=genes, description=description))
            except MalformedPathwayError as e:
                logger.warning(f"Skipping line {line_no} in {file_path}: {e}")

    catalog = PathwayCatalog(pathways)
    logger.info(f"Loaded {len(catalog)} pathways from {file_path}")
    return catalog


def _select_column(columns: List[str], ref: ColumnRef) -> str:
    if isinstance(ref, int):
        return columns[ref]
    if ref not in columns:
        raise ValueError(f"Column '{ref}' not found. Available columns: {', '.join(columns)}")
    return ref


def read_pathway_table(
    file_path: Union[str, Path],
    pathway_col: ColumnRef = 0,
    gene_col: ColumnRef = 1,
    header: bool = True,
    separator: Optional[str] = None,
) -> PathwayCatalog:
    """
    Read pathways from a long two-column text table (one pathway-gene pair per row).

    Args:
        file_path: Path to table file
        pathway_col: Pathway id column (index or name)
        gene_col: Gene column (index or name)
        header: Whether the first row is a header
        separator: Field separator; tab by default, comma for .csv files

    Returns:
        PathwayCatalog in first-seen order
    """
    file_path = Path(file_path)
    if separator is None:
        separator = ',' if file_path.suffix.lower() == '.csv' else '\t'

    df = pl.read_csv(
        file_path,
        separator=separator,
        has_header=header,
        infer_schema_length=0,
    )
    pathway_name = _select_column(df.columns, pathway_col)
    gene_name = _select_column(df.columns, gene_col)

    catalog = _catalog_from_pairs(zip(df[pathway_name].to_list(), df[gene_name].to_list()), file_path)
    logger.info(f"Loaded {len(catalog)} pathways from {file_path}")
    return catalog


def read_pathway_excel(
    file_path: Union[str, Path],
    pathway_col: ColumnRef = 0,
    gene_col: ColumnRef = 1,
    header: bool = True,
    sheet_name: Union[int, str] = 0,
) -> PathwayCatalog:
    """
    Read pathways from a spreadsheet laid out like :func:`read_pathway_table`.

    Args:
        file_path: Path to .xlsx/.xls file
        pathway_col: Pathway id column (index or name)
        gene_col: Gene column (index or name)
        header: Whether the first row is a header
        sheet_name: Sheet to read

    Returns:
        PathwayCatalog in first-seen order
    """
    file_path = Path(file_path)
    engine = 'openpyxl' if file_path.suffix.lower() == '.xlsx' else None
    df = pd.read_excel(
        file_path,
        sheet_name=sheet_name,
        header=0 if header else None,
        dtype=str,
        engine=engine,
    )
    columns = [str(c) for c in df.columns]
    df.columns = columns
    pathway_name = _select_column(columns, pathway_col)
    gene_name = _select_column(columns, gene_col)

    pathways = df[pathway_name].where(df[pathway_name].notna(), None).tolist()
    genes = df[gene_name].where(df[gene_name].notna(), None).tolist()
    catalog = _catalog_from_pairs(zip(pathways, genes), file_path)
    logger.info(f"Loaded {len(catalog)} pathways from {file_path}")
    return catalog


def read_pathways(
    file_path: Union[str, Path],
    min_genes: int = 1,
    max_genes: Optional[int] = None,
    **kwargs,
) -> PathwayCatalog:
    """
    Read pathway annotations, choosing the reader from the file extension.

    Args:
        file_path: GMT, text table or spreadsheet file
        min_genes: Minimum pathway size to keep
        max_genes: Maximum pathway size to keep, or None for no limit
        **kwargs: Passed to the table or spreadsheet reader

    Returns:
        PathwayCatalog restricted to the requested size range
    """
    file_path = Path(file_path)
    suffix = file_path.suffix.lower()
    if suffix in GMT_SUFFIXES:
        catalog = read_gmt(file_path)
    elif suffix in TABLE_SUFFIXES:
        catalog = read_pathway_table(file_path, **kwargs)
    elif suffix in EXCEL_SUFFIXES:
        catalog = read_pathway_excel(file_path, **kwargs)
    else:
        raise ValueError(f"Unsupported pathway file format: '{suffix}'")

    if min_genes > 1 or max_genes is not None:
        catalog = catalog.filter_by_size(min_genes, max_genes)
    return catalog


def write_pathways(catalog: PathwayCatalog, file_path: Union[str, Path]) -> Path:
    """
    Write a catalog as a GMT file.

    Args:
        catalog: Pathway catalog
        file_path: Output path

    Returns:
        Path of the written file
    """
    file_path = Path(file_path)
    with open(file_path, 'w') as f:
        for pathway in catalog:
            f.write('\t'.join([pathway.id, pathway.description, *sorted(pathway.genes)]) + '\n')
    logger.info(f"Wrote {len(catalog)} pathways to {file_path}")
    return file_path


def load_gene_lists(file_path: Union[str, Path], separator: str = '\t') -> Dict[str, List[str]]:
    """
    Load named gene lists.

    Two layouts are accepted: a long table with ``set`` and ``gene`` columns,
    or a wide table with one column per list (blank cells ignored).

    Args:
        file_path: Path to gene list table

    Returns:
        Dictionary of list name to genes, in file order
    """
    df = pl.read_csv(file_path, separator=separator, has_header=True, infer_schema_length=0)

    gene_lists: Dict[str, List[str]] = {}
    if {'set', 'gene'} <= set(df.columns):
        for set_name, gene in zip(df['set'].to_list(), df['gene'].to_list()):
            if set_name is None or gene is None:
                continue
            gene_lists.setdefault(set_name.strip(), []).append(gene)
    else:
        for column in df.columns:
            gene_lists[column.strip()] = [g for g in df[column].to_list() if g is not None and g.strip()]

    logger.info(f"Loaded {len(gene_lists)} gene lists from {file_path}: {', '.join(gene_lists)}")
    return gene_lists


def prepare_universe(gene_lists: Dict[str, Iterable[str]]) -> GeneUniverse:
    """Validate named gene lists (including ``background``) into a GeneUniverse."""
    return GeneUniverse.from_mapping(gene_lists)
