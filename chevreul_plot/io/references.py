"""Reference tables: pseudogene lists and gene to transcript mappings."""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Set, Union

import pandas as pd

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def load_pseudogenes(path: PathLike, column: Optional[str] = None) -> Set[str]:
    """
    Load a set of pseudogene identifiers.

    Parameters
    ----------
    path : str or Path
        Plain text file with one identifier per line, or a CSV file.
    column : str, optional
        CSV column holding identifiers. Defaults to 'symbol' when present,
        otherwise the first column.

    Returns
    -------
    set of str
        Pseudogene identifiers.
    """
    path = Path(path)
    if path.suffix.lower() in (".csv", ".tsv"):
        sep = "\t" if path.suffix.lower() == ".tsv" else ","
        table = pd.read_csv(path, sep=sep)
        if column is None:
            column = "symbol" if "symbol" in table.columns else table.columns[0]
        values = table[column].dropna().astype(str)
    else:
        lines = path.read_text().splitlines()
        values = [line.strip() for line in lines if line.strip()]

    pseudogenes = set(values)
    logger.info(f"Loaded {len(pseudogenes)} pseudogenes from {path}")
    return pseudogenes


def load_transcript_reference(
    genes_path: PathLike, tx2gene_path: Optional[PathLike] = None
) -> pd.DataFrame:
    """
    Load a gene symbol to transcript mapping.

    Parameters
    ----------
    genes_path : str or Path
        CSV with columns symbol and ensgene, or symbol and enstxp when no
        tx2gene table is given.
    tx2gene_path : str or Path, optional
        CSV with columns enstxp and ensgene, joined on ensgene.

    Returns
    -------
    pd.DataFrame
        Table with at least the columns symbol and enstxp.
    """
    genes = pd.read_csv(genes_path)

    if tx2gene_path is not None:
        tx2gene = pd.read_csv(tx2gene_path)
        _require_columns(genes, ["symbol", "ensgene"], genes_path)
        _require_columns(tx2gene, ["enstxp", "ensgene"], tx2gene_path)
        reference = genes.merge(tx2gene, on="ensgene", how="left")
    else:
        reference = genes

    _require_columns(reference, ["symbol", "enstxp"], genes_path)
    reference = reference.dropna(subset=["enstxp"])

    logger.info(
        f"Loaded {reference['enstxp'].nunique()} transcripts "
        f"for {reference['symbol'].nunique()} genes"
    )
    return reference


def _require_columns(table: pd.DataFrame, columns: List[str], source) -> None:
    missing = [c for c in columns if c not in table.columns]
    if missing:
        raise ValueError(f"Reference table {source} is missing columns: {missing}")


def genes_to_transcripts(genes: Union[str, Iterable[str]], tx2gene: pd.DataFrame) -> List[str]:
    """
    Look up the transcripts of one or more genes.

    Parameters
    ----------
    genes : str or iterable of str
        Gene symbols.
    tx2gene : pd.DataFrame
        Reference with columns symbol and enstxp.

    Returns
    -------
    list of str
        Transcript identifiers in reference order, without duplicates.
    """
    if isinstance(genes, str):
        genes = [genes]
    genes = set(genes)
    transcripts = tx2gene.loc[tx2gene["symbol"].isin(genes), "enstxp"].astype(str)
    return list(dict.fromkeys(transcripts))
