import os

import pandas as pd

from contingency import ContingencyPattern
from index_registry import TABLE_NAMES, IndexRegistry


def _read_table(prepdata_directory, name):
    file_name = os.path.join(prepdata_directory, f'index_{name}.csv')
    if not os.path.isfile(file_name):
        return []

    data = pd.read_csv(file_name)
    missing = {'year', 'position'} - set(data.columns)
    if missing:
        raise ValueError(f"{file_name} is missing columns: {sorted(missing)}")

    data = data[['year', 'position']].dropna().astype(int)
    return list(data.itertuples(index=False, name=None))


def fetch_index_registry(prepdata_directory):
    """Build the index registry from the problem-setup CSV files.

    Each table is read from ``index_<table>.csv`` with ``year`` and
    ``position`` columns; a missing file means an empty table.
    """
    return IndexRegistry.from_entries(**{name: _read_table(prepdata_directory, name) for name in TABLE_NAMES})


def _read_vector(file_name):
    data = pd.read_csv(file_name, header=None)
    return data.fillna(0.0).values.ravel().astype(float).tolist()


def fetch_contingency_pattern(file_name, registry, n_years, n_events):
    if file_name is None:
        return ContingencyPattern.baseline(len(registry.capacity), n_years, n_events)
    return ContingencyPattern(_read_vector(file_name), len(registry.capacity), n_years, n_events)


def fetch_investment_floor(file_name, registry):
    if file_name is None:
        return None
    values = _read_vector(file_name)
    size = len(registry.minimum_investment)
    if len(values) != size:
        raise ValueError(f"{file_name} has {len(values)} values, expected {size}")
    return values
