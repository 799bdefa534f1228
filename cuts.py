from collections import defaultdict
from dataclasses import dataclass, field

from gurobipy import quicksum

from solver_adapter import SolverFault

FEASIBILITY = 'feasibility'
OPTIMALITY = 'optimality'


@dataclass
class Cut:
    """``constant + sum(coefficients[col] * master_var[col]) <= 0``."""

    year: int
    iteration: int
    kind: str
    constant: float
    coefficients: dict = field(default_factory=lambda: defaultdict(float))
    capacity_duals: list = field(default_factory=list)

    @property
    def name(self):
        return f'Cut_y{self.year}_iter{self.iteration}'

    def expression(self, master_variables):
        return self.constant + quicksum(coef * master_variables[col] for col, coef in self.coefficients.items())


def dual_constant(duals, rhs):
    return sum(pi * b for pi, b in zip(duals, rhs))


def optimality_cut(subproblem, iteration):
    # theta_j >= sum(pi * rhs) + sum(mu * capacity)
    duals = subproblem.dual_values()
    rhs = subproblem.right_hand_sides()
    cut = Cut(subproblem.year, iteration, OPTIMALITY, dual_constant(duals, rhs))
    cut.coefficients[subproblem.year - 1] = -1.0
    cut.capacity_duals = list(subproblem.dual_values(subproblem.capacity_links))
    return cut


def feasibility_cut(subproblem, iteration):
    # Farkas duals are >= 0 on <= rows; negate them so both cut kinds share
    # the sign convention of Pi on a minimization
    with subproblem.ray_mode():
        outcome = subproblem.solve()
        if outcome.optimal:
            raise SolverFault(f"Year {subproblem.year} solved to optimality while extracting a dual ray")
        ray = [-value for value in subproblem.farkas_values()]
        capacity_ray = [-value for value in subproblem.farkas_values(subproblem.capacity_links)]
        rhs = subproblem.right_hand_sides()

    cut = Cut(subproblem.year, iteration, FEASIBILITY, dual_constant(ray, rhs))
    cut.capacity_duals = capacity_ray
    return cut


def add_capacity_duals(cuts, registry, n_years):
    """Attach mu_k * capacity_k terms to every year that produced a cut.

    Capacity entry i lives in master column n_years + i and in slot k of its
    year's capacity-link set.
    """
    cuts_by_year = {cut.year: cut for cut in cuts}
    for i, year, slot in registry.capacity_slots():
        cut = cuts_by_year.get(year)
        if cut is not None:
            cut.coefficients[n_years + i] += cut.capacity_duals[slot]
    return cuts


def write_cuts(cuts_file, iteration, cuts, master_names):
    lines = ['-' * 30, f"Iteration {iteration}:"]

    for cut in cuts:
        parts = [f"{cut.name} ({cut.kind}): {cut.constant:.3f}"]
        for col, coef in sorted(cut.coefficients.items()):
            if abs(coef) > 1e-6:
                sign = '+' if coef >= 0 else '-'
                parts.append(f" {sign} {abs(coef):.3f} * {master_names[col]}")
        parts.append(" <= 0")
        lines.append(''.join(parts))

    cuts_file.write('\n'.join(lines) + '\n')
    cuts_file.flush()
