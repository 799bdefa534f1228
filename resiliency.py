import logging
from dataclasses import dataclass, field

from solver_adapter import SolverFault

logger = logging.getLogger(__name__)


@dataclass
class ResiliencyResult:
    totals: dict
    score: float
    feasible: bool
    duals: dict = field(default_factory=dict)

    def metrics_string(self):
        return ''.join(f',{self.totals[event]:g}' for event in sorted(self.totals))


def baseline_costs(engine, pattern):
    """Start every event's total at minus the cost of its years without the event."""
    config = engine.config
    totals = {event: 0.0 for event in pattern.events()}

    triggered = [year for year in range(1, config.n_years + 1) if pattern.year_triggered(year)]
    if triggered and not config.use_benders:
        engine.capacity_constraints(pattern, 0, 0)

    for year in triggered:
        subproblem = engine.year_models[year]
        if config.use_benders:
            # operating cost is left over from the converged loop
            outcome = subproblem.last_outcome
        else:
            outcome = subproblem.solve()
        if outcome is None or not outcome.optimal:
            raise SolverFault(f"Year {year} has no baseline operating cost")

        for event in pattern.active_events(year):
            totals[event] -= outcome.objective

    return totals


def evaluate_resiliency(engine, pattern):
    config = engine.config
    verbose = config.verbose

    if verbose:
        logger.info("- Solving resiliency...")

    totals = baseline_costs(engine, pattern)
    feasible = True
    duals = {}

    for event in pattern.events():
        engine.capacity_constraints(pattern, event, 0)
        event_feasible = True
        years_changed = set()

        for year in range(1, config.n_years + 1):
            if not pattern.year_active(year, event):
                continue

            outcome = engine.year_models[year].solve()
            years_changed.add(year)

            if not outcome.optimal:
                totals[event] = config.event_infeasible_cost
                feasible = False
                event_feasible = False
                if verbose:
                    logger.info(f"\t\tEv: {event}\tYr: {year}\tInfeasible!")
                break

            totals[event] += outcome.objective

        if event_feasible:
            duals[event] = engine.event_duals(years_changed)

    if feasible:
        for event in pattern.events():
            if verbose:
                logger.info(f"\t\tEv: {event}\tCost: {totals[event]}")
        score = sum(totals.values()) / config.n_events
        if verbose:
            logger.info(f"\tResiliency: {score}")
    else:
        score = config.resiliency_infeasible_score
        if verbose:
            logger.info("\tResiliency infeasible!")

    return ResiliencyResult(totals, score, feasible, duals)
