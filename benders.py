import os
import time
import logging
import concurrent.futures
from dataclasses import dataclass, field

from contingency import ContingencyPattern
from cuts import FEASIBILITY, add_capacity_duals, feasibility_cut, optimality_cut, write_cuts
from decoder import decode_direct, decode_direct_duals, decode_duals, decode_master, decode_solution
from metrics import sustainability_objectives
from resiliency import evaluate_resiliency
from solver_adapter import SolverFault, load_year_models

logger = logging.getLogger(__name__)


@dataclass
class IterationRecord:
    iteration: int
    lower_bound: float
    upper_bound: float
    cuts: list = field(default_factory=list)

    @property
    def cuts_added(self):
        return len(self.cuts)


@dataclass
class CandidateResult:
    objectives: list
    metrics_string: str = None
    feasible: bool = False
    fault: bool = False
    iterations: int = 0
    resiliency: object = None


class BendersEngine:
    """Master/subproblem coordinator for one set of loaded year models.

    year_models[0] is the master (or the combined model when decomposition
    is off); years 1..n_years are the operational subproblems. The engine is
    reused across candidates: cuts and investment floors added during a call
    are always removed before it returns.
    """

    def __init__(self, config, registry, year_models):
        if len(year_models) != config.n_years + 1:
            raise ValueError(f"Expected {config.n_years + 1} year models, got {len(year_models)}")
        for entry in registry.capacity:
            if not 1 <= entry.year <= config.n_years:
                raise ValueError(f"Capacity entry for year {entry.year} is outside the horizon")
        for name in ('capacity', 'node_balance'):
            if not registry.table(name).grouped_by_year():
                raise ValueError(f"Index table '{name}' must be grouped by ascending year")

        self.config = config
        self.registry = registry
        self.year_models = year_models
        self.solution = ()
        self.dual_solution = {event: [] for event in range(config.n_events + 1)}
        self.history = []
        self.candidates = 0

        for i, year, slot in registry.capacity_slots():
            year_models[year].add_capacity_link(slot)

    @classmethod
    def from_prepdata(cls, config, registry):
        return cls(config, registry, load_year_models(config))

    @property
    def master(self):
        return self.year_models[0]

    @property
    def subproblems(self):
        return self.year_models[1:]

    @property
    def investment_offset(self):
        offset = len(self.registry.capacity)
        if self.config.use_benders:
            offset += self.config.n_years
        return offset

    def default_pattern(self):
        return ContingencyPattern.baseline(len(self.registry.capacity), self.config.n_years, self.config.n_events)

    def capacity_constraints(self, pattern, event, offset):
        """Rewrite every capacity link as mask(event) * solution[offset + i]."""
        constraints = {year: [] for year in range(1, self.config.n_years + 1)}
        values = {year: [] for year in range(1, self.config.n_years + 1)}

        for i, year, slot in self.registry.capacity_slots():
            constraints[year].append(self.year_models[year].capacity_links[slot])
            values[year].append(pattern.mask(i, event) * self.solution[offset + i])

        for year, year_constraints in constraints.items():
            if year_constraints:
                self.year_models[year].set_upper_bounds(year_constraints, values[year])

    def solve_candidate(self, investment_floor=None, pattern=None, report=False):
        """Evaluate one candidate minimum-investment vector."""
        floors = []
        try:
            if investment_floor is not None:
                floors = self._add_investment_floor(investment_floor)
            return self._solve_individual(pattern, report)
        except SolverFault as exc:
            logger.error(f"Solver exception caught: {exc}")
            return CandidateResult(self._infeasible_objectives(), fault=True, iterations=len(self.history))
        finally:
            self._cleanup(floors)

    def solve_individual(self, pattern=None, report=False):
        try:
            return self._solve_individual(pattern, report)
        except SolverFault as exc:
            logger.error(f"Solver exception caught: {exc}")
            return CandidateResult(self._infeasible_objectives(), fault=True, iterations=len(self.history))
        finally:
            self._cleanup([])

    def apply_minimum_investment(self, investment_floor):
        size = len(self.registry.minimum_investment)
        columns = self.master.variables[self.investment_offset:self.investment_offset + size]
        try:
            self.master.set_lower_bounds(columns, list(investment_floor[:size]))
        except SolverFault as exc:
            logger.error(f"Solver exception caught: {exc}")

    def solution_strings(self):
        return [f'{value:g}' for value in self.solution]

    def dual_solution_strings(self, event=0):
        return [f'{value:g}' for value in self.dual_solution[event]]

    def event_duals(self, years):
        year_duals = {year: self.year_models[year].dual_values() for year in years}
        return decode_duals(self.registry, year_duals, len(self.config.sustainability_metrics),
                            self.config.n_years, baseline=self.dual_solution[0], years=years)

    def close(self):
        for year_model in self.year_models:
            year_model.dispose()

    def _infeasible_objectives(self):
        return [self.config.infeasible_objective] * self.config.objective_count

    def _add_investment_floor(self, investment_floor):
        size = len(self.registry.minimum_investment)
        if len(investment_floor) < size:
            raise ValueError(f"Investment floor has {len(investment_floor)} values, expected {size}")
        columns = self.master.variables[self.investment_offset:self.investment_offset + size]
        return self.master.add_constraints(
            [(var >= floor, f'MinInv_{i}') for i, (var, floor) in enumerate(zip(columns, investment_floor))])

    def _cleanup(self, floors):
        # the next candidate starts from an empty cut set
        handles = list(floors) + list(self.master.cuts)
        self.master.cuts = []
        if handles:
            try:
                self.master.remove_constraints(handles)
            except SolverFault as exc:
                logger.error(f"Solver exception caught: {exc}")

    def _solve_individual(self, pattern, report):
        config = self.config
        pattern = pattern or self.default_pattern()
        if pattern.n_events != config.n_events:
            raise ValueError(f"Pattern describes {pattern.n_events} events, engine expects {config.n_events}")

        self.candidates += 1
        self.history = []
        objectives = self._infeasible_objectives()

        if not config.use_benders:
            if config.verbose:
                logger.info("- Solving problem")
            outcome = self.master.solve()
            if outcome.optimal:
                self._store_direct_solution()
        else:
            outcome = self._decompose(pattern)

        if outcome is None or not outcome.optimal:
            logger.info("\tProblem infeasible!")
            return CandidateResult(objectives, iterations=len(self.history))

        objectives[0] = outcome.objective
        if config.verbose:
            logger.info(f"\tCost: {objectives[0]}")

        sustainability, sums = sustainability_objectives(self.solution, self.registry, config)
        for i, value in enumerate(sustainability):
            objectives[1 + i] = value
            if config.verbose:
                if config.is_emission_objective(i):
                    logger.info(f"\t{config.sustainability_objectives[i]}: {value} (Sum: {sums[i]})")
                else:
                    logger.info(f"\t{config.sustainability_objectives[i]}: {value}")

        metrics_string = None
        if report:
            metrics_string = ''.join(f',{sums[i]:g}' for i in range(len(config.sustainability_metrics)))

        resiliency = None
        if config.n_events > 0:
            resiliency = evaluate_resiliency(self, pattern)
            self.dual_solution.update(resiliency.duals)
            objectives[len(config.sustainability_objectives) + 1] = resiliency.score
            if report:
                metrics_string = resiliency.metrics_string() + metrics_string

        return CandidateResult(objectives, metrics_string, feasible=True,
                               iterations=len(self.history), resiliency=resiliency)

    def _store_direct_solution(self):
        self.solution = decode_direct(self.master.primal_values())
        self.dual_solution = {event: [] for event in range(self.config.n_events + 1)}
        self.dual_solution[0] = decode_direct_duals(self.registry, self.master.dual_values())

    def _store_solution(self, primals):
        n_years = self.config.n_years
        self.solution = decode_solution(self.registry, primals, n_years)
        year_duals = {year: self.year_models[year].dual_values() for year in range(1, n_years + 1)}
        self.dual_solution = {event: [] for event in range(self.config.n_events + 1)}
        self.dual_solution[0] = decode_duals(self.registry, year_duals, len(self.config.sustainability_metrics), n_years)

    def _solve_subproblems(self, executor=None):
        if executor is not None:
            # capacity links are already written, subproblems share nothing else
            futures = {sub.year: executor.submit(sub.solve) for sub in self.subproblems}
            return {year: futures[year].result() for year in futures}
        return {sub.year: sub.solve() for sub in self.subproblems}

    def _decompose(self, pattern):
        config = self.config
        n_years = config.n_years
        master = self.master
        best_upper_bound = float('inf')
        best_lower_bound = float('-inf')
        master_outcome = None
        log_file, cuts_file = self._open_logs()
        executor = None
        if config.subproblem_workers > 1:
            executor = concurrent.futures.ThreadPoolExecutor(max_workers=config.subproblem_workers)

        try:
            iteration = 0
            while iteration < config.max_iterations:
                iteration += 1
                iteration_start_time = time.time()

                if config.verbose:
                    logger.info(f"- Solving master problem (Iteration #{iteration})")
                master_outcome = master.solve()
                if not master_outcome.optimal:
                    break

                # first n_years columns are the estimated subproblem costs
                master_primal = master.primal_values()
                self.solution = decode_master(master_primal)
                self.capacity_constraints(pattern, 0, n_years)

                if config.verbose:
                    logger.info("- Solving subproblems")
                outcomes = self._solve_subproblems(executor)

                cuts = []
                for year in range(1, n_years + 1):
                    outcome = outcomes[year]
                    subproblem = self.year_models[year]
                    if outcome.infeasible:
                        cuts.append(feasibility_cut(subproblem, iteration))
                    elif self.solution[year - 1] < outcome.objective * config.underestimate_tolerance:
                        cuts.append(optimality_cut(subproblem, iteration))
                add_capacity_duals(cuts, self.registry, n_years)

                all_feasible = all(outcome.optimal for outcome in outcomes.values())
                lower_bound = master_outcome.objective
                best_lower_bound = max(best_lower_bound, lower_bound)
                if all_feasible:
                    upper_bound = (master_outcome.objective - sum(self.solution[:n_years])
                                   + sum(outcome.objective for outcome in outcomes.values()))
                    best_upper_bound = min(best_upper_bound, upper_bound)

                final = not cuts or iteration == config.max_iterations
                if final and all_feasible:
                    primals = [master_primal] + [sub.primal_values() for sub in self.subproblems]
                    self._store_solution(primals)

                if cuts:
                    handles = master.add_constraints([(cut.expression(master.variables) <= 0, cut.name) for cut in cuts])
                    master.cuts.extend(handles)

                record = IterationRecord(iteration, best_lower_bound, best_upper_bound,
                                         [(cut.year, cut.kind) for cut in cuts])
                self.history.append(record)
                self._log_iteration(log_file, record, time.time() - iteration_start_time)
                if cuts_file and cuts:
                    write_cuts(cuts_file, iteration, cuts, [var.VarName for var in master.variables])

                if config.verbose and cuts:
                    logger.info('  ' + ' '.join(f"{'' if kind == FEASIBILITY else 'o'}{year}" for year, kind in record.cuts))

                if not cuts:
                    if config.verbose:
                        logger.info("No cuts - Optimal solution found!")
                    break

                if iteration == config.max_iterations:
                    logger.warning(f"Benders iteration limit ({config.max_iterations}) reached without convergence")
                    if not all_feasible:
                        master_outcome = None
        finally:
            if executor is not None:
                executor.shutdown()
            for handle in (log_file, cuts_file):
                if handle is not None:
                    handle.close()
        return master_outcome

    def _open_logs(self):
        if not self.config.results_directory:
            return None, None
        os.makedirs(self.config.results_directory, exist_ok=True)
        log_file = open(os.path.join(self.config.results_directory, 'BendersLog.txt'), 'a')
        log_file.write('=' * 30 + '\n' + f"Candidate {self.candidates}\n")
        cuts_file = None
        if self.config.write_cuts:
            cuts_file = open(os.path.join(self.config.results_directory, 'GeneratedCuts.txt'), 'a')
        return log_file, cuts_file

    def _log_iteration(self, log_file, record, elapsed):
        if log_file is None:
            return
        if record.upper_bound == float('inf'):
            gap = float('inf')
        else:
            gap = (record.upper_bound - record.lower_bound) / max(1e-6, abs(record.upper_bound))
        log_lines = [
            '-' * 30,
            f"Iteration {record.iteration}:",
            f"Upper Bound: {record.upper_bound:.2f}",
            f"Lower Bound: {record.lower_bound:.2f}",
            f"Gap: {(100 * gap):.2f}%",
            f"Cuts Added: {record.cuts_added}",
            f"Iteration Time: {elapsed:.2f} seconds"
        ]
        log_file.write('\n'.join(log_lines) + '\n')
        log_file.flush()
