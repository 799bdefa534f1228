WORST_CASE_GROWTH = 0.01
BEST_CASE_REDUCTION = 0.01
WARM_UP_YEARS = 5


def sum_by_row(values, table, start):
    """Sum each contiguous run of equal positions in an index table.

    Runs are emitted in the order they appear in the table; values for
    entry i are read at values[start + i].
    """
    result = []
    last_position = None
    total = 0.0

    for i, entry in enumerate(table):
        if last_position is not None and entry.position != last_position:
            result.append(total)
            total = 0.0
        last_position = entry.position
        total += values[start + i]

    if last_position is not None:
        result.append(total)

    return result


def emission_index(values, start, horizon, growth=WORST_CASE_GROWTH, reduction=BEST_CASE_REDUCTION,
                   warm_up=WARM_UP_YEARS):
    """Average position of an emissions trajectory between two envelopes.

    Both envelopes start from the first year's emissions: the worst case
    compounds by ``growth`` per year, the best case drops by ``reduction``
    of the first-year value per year. Only years after ``warm_up`` with an
    open envelope count; returns 0 when none do.
    """
    em_zero = values[start]
    worst = em_zero
    best = em_zero
    step = reduction * em_zero
    total = 0.0
    counted = 0

    for i in range(1, horizon):
        worst = worst * (1 + growth)
        best -= step
        if i > warm_up and worst > best:
            total += (values[start + i] - best) / (worst - best)
            counted += 1

    return 0.0 if counted == 0 else total / counted


def sustainability_objectives(solution, registry, config):
    """Objective entries for each configured metric plus the per-metric sums.

    Emission-type objectives report the emission index; every other metric
    reports its plain sum over the horizon.
    """
    start = registry.offset_of('emissions')
    sums = sum_by_row(solution, registry.emissions, start)

    objectives = []
    for i in range(len(config.sustainability_objectives)):
        if config.is_emission_objective(i):
            objectives.append(emission_index(solution, start + config.n_years * i, config.n_years))
        else:
            objectives.append(sums[i])

    return objectives, sums
