from collections import namedtuple
from dataclasses import dataclass

IndexEntry = namedtuple('IndexEntry', ['year', 'position'])

TABLE_NAMES = ('capacity', 'investment', 'emissions', 'reserve_margin', 'flows',
               'unserved_demand', 'angles', 'node_balance', 'minimum_investment')

# order in which the flattened solution vector is assembled
SOLUTION_ORDER = ('capacity', 'investment', 'emissions', 'reserve_margin', 'flows',
                  'unserved_demand', 'angles')


class IndexTable:
    def __init__(self, name, entries=()):
        self.name = name
        self._entries = tuple(IndexEntry(int(year), int(position)) for year, position in entries)

        # emissions are laid out metric by metric, so year order is not enforced
        for entry in self._entries:
            if entry.year < 0:
                raise ValueError(f"Index table '{name}' has a negative year: {entry.year}")

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __getitem__(self, i):
        return self._entries[i]

    def __repr__(self):
        return f"IndexTable({self.name!r}, size={len(self)})"

    def years(self):
        return sorted({entry.year for entry in self._entries})

    def grouped_by_year(self):
        years = [entry.year for entry in self._entries]
        return years == sorted(years)


class YearCursor:
    """Next unread slot of each year's flat array.

    Several tables are consumed one after the other against the same per-year
    arrays, so a single cursor is shared across tables and every read
    advances the slot of the year it came from.
    """

    def __init__(self, n_years, start=None):
        self._next = {year: 0 for year in range(n_years + 1)}
        for year, offset in (start or {}).items():
            self._next[year] = offset

    def take(self, year):
        slot = self._next[year]
        self._next[year] = slot + 1
        return slot

    def skip(self, year):
        self._next[year] += 1


@dataclass(frozen=True)
class IndexRegistry:
    capacity: IndexTable
    investment: IndexTable
    emissions: IndexTable
    reserve_margin: IndexTable
    flows: IndexTable
    unserved_demand: IndexTable
    angles: IndexTable
    node_balance: IndexTable
    minimum_investment: IndexTable

    @classmethod
    def from_entries(cls, **tables):
        unknown = set(tables) - set(TABLE_NAMES)
        if unknown:
            raise ValueError(f"Unknown index tables: {sorted(unknown)}")
        return cls(**{name: IndexTable(name, tables.get(name, ())) for name in TABLE_NAMES})

    def table(self, name):
        return getattr(self, name)

    def offset_of(self, name):
        """Start of a table's segment inside the flattened solution vector."""
        offset = 0
        for table_name in SOLUTION_ORDER:
            if table_name == name:
                return offset
            offset += len(self.table(table_name))
        raise KeyError(name)

    def capacity_slots(self):
        # (capacity index, year, slot within that year's capacity-link set)
        cursor = YearCursor(max([0] + self.capacity.years()))
        for i, entry in enumerate(self.capacity):
            yield i, entry.year, cursor.take(entry.year)
