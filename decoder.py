from index_registry import YearCursor

# read from the owning year, after the master-held reserve margins
TRAILING_YEAR_TABLES = ('flows', 'unserved_demand', 'angles')


def decode_direct(primal):
    return tuple(primal)


def decode_master(master_primal):
    # first n_years columns are the cost estimates, then the capacities
    return tuple(master_primal)


def decode_solution(registry, primals, n_years):
    """Rebuild the canonical solution vector from per-year primal arrays.

    primals[0] is the master; its first n_years columns hold the per-year
    cost estimates and are not part of the solution. Capacities are taken
    from the master and skip the matching capacity copies at the front of
    each subproblem.
    """
    cursor = YearCursor(n_years, start={0: n_years})
    solution = []

    for entry in registry.capacity:
        solution.append(primals[0][cursor.take(0)])
        cursor.skip(entry.year)

    for entry in registry.investment:
        solution.append(primals[0][cursor.take(0)])

    for entry in registry.emissions:
        solution.append(primals[entry.year][cursor.take(entry.year)])

    for entry in registry.reserve_margin:
        solution.append(primals[0][cursor.take(0)])

    for name in TRAILING_YEAR_TABLES:
        for entry in registry.table(name):
            solution.append(primals[entry.year][cursor.take(entry.year)])

    return tuple(solution)


def decode_direct_duals(registry, duals):
    start = len(registry.emissions) + len(registry.reserve_margin)
    return [duals[start + i] for i in range(len(registry.node_balance))]


def decode_duals(registry, year_duals, start, n_years, baseline=None, years=None):
    """Node-balance duals aligned to the node_balance table.

    Each year's array is read from row ``start`` onwards. Years outside
    ``years`` were not re-solved, so the baseline value at the same position
    is copied instead.
    """
    cursor = YearCursor(n_years, start={year: start for year in range(n_years + 1)})
    result = []

    for j, entry in enumerate(registry.node_balance):
        if years is None or entry.year in years:
            result.append(year_duals[entry.year][cursor.take(entry.year)])
        else:
            cursor.skip(entry.year)
            result.append(baseline[j])

    return result
