import os
import logging
from collections import namedtuple
from contextlib import contextmanager

import gurobipy
from gurobipy import GRB, Env

logger = logging.getLogger(__name__)

# parameters used to extract a Farkas ray from an infeasible LP
RAY_MODE_PARAMS = {'Presolve': 0, 'ScaleFlag': 0, 'Method': 0, 'InfUnbdInfo': 1, 'DualReductions': 0}


class SolverFault(RuntimeError):
    pass


class ModelLoadError(SolverFault):
    pass


class SolveOutcome(namedtuple('SolveOutcome', ['status', 'objective'])):
    __slots__ = ()

    @property
    def optimal(self):
        return self.status == GRB.OPTIMAL

    @property
    def infeasible(self):
        return self.status != GRB.OPTIMAL


@contextmanager
def solver_call(year, action):
    try:
        yield
    except gurobipy.GurobiError as exc:
        raise SolverFault(f"Gurobi failed to {action} year {year}: {exc}") from exc


class YearModel:
    """One year's optimization model and the constraints the engine manages on it.

    ``constraints`` are the model's own rows captured when it was wrapped;
    capacity links, cuts and investment floors added later are tracked
    separately so they never leak into dual readings.
    """

    def __init__(self, year, model, env=None):
        self.year = year
        self.model = model
        self.env = env
        with solver_call(year, 'read'):
            model.update()
            self.variables = model.getVars()
            self.constraints = model.getConstrs()
        self.capacity_links = []
        self.cuts = []
        self.last_outcome = None

    def __repr__(self):
        return f"YearModel(year={self.year}, vars={len(self.variables)}, constrs={len(self.constraints)})"

    def set_params(self, params):
        with solver_call(self.year, 'set parameters on'):
            for name, value in params.items():
                self.model.setParam(name, value)

    def solve(self):
        with solver_call(self.year, 'solve'):
            self.model.optimize()
            status = self.model.Status
            objective = self.model.ObjVal if status == GRB.OPTIMAL else None
        self.last_outcome = SolveOutcome(status, objective)
        return self.last_outcome

    @contextmanager
    def ray_mode(self):
        """Switch to settings that leave a dual ray behind an infeasible solve.

        The previous parameter values are put back on every exit path.
        """
        with solver_call(self.year, 'read parameters of'):
            previous = {name: self.model.getParamInfo(name)[2] for name in RAY_MODE_PARAMS}
        self.set_params(RAY_MODE_PARAMS)
        try:
            yield self
        finally:
            self.set_params(previous)

    def primal_values(self, variables=None):
        with solver_call(self.year, 'read primal values of'):
            return self.model.getAttr('X', self.variables if variables is None else variables)

    def dual_values(self, constraints=None):
        with solver_call(self.year, 'read dual values of'):
            return self.model.getAttr('Pi', self.constraints if constraints is None else constraints)

    def farkas_values(self, constraints=None):
        with solver_call(self.year, 'read the dual ray of'):
            return self.model.getAttr('FarkasDual', self.constraints if constraints is None else constraints)

    def right_hand_sides(self, constraints=None):
        with solver_call(self.year, 'read right-hand sides of'):
            return self.model.getAttr('RHS', self.constraints if constraints is None else constraints)

    def add_capacity_link(self, slot):
        with solver_call(self.year, 'add a capacity link to'):
            constr = self.model.addConstr(self.variables[slot] <= 0, name=f'CapLink_y{self.year}_{slot}')
            self.model.update()
        self.capacity_links.append(constr)
        return constr

    def set_upper_bounds(self, constraints, values):
        with solver_call(self.year, 'set bounds on'):
            self.model.setAttr('RHS', constraints, values)
            self.model.update()

    def add_constraints(self, constraints):
        """Add every ``(expression, name)`` pair, or none of them.

        Rows added before a failure are removed again, so the caller never
        loses track of a constraint left in the model.
        """
        handles = []
        try:
            with solver_call(self.year, 'add constraints to'):
                for expression, name in constraints:
                    handles.append(self.model.addConstr(expression, name=name))
                self.model.update()
        except SolverFault:
            if handles:
                with solver_call(self.year, 'roll back constraints on'):
                    self.model.update()
                    self.model.remove(handles)
                    self.model.update()
            raise
        return handles

    def remove_constraints(self, handles):
        with solver_call(self.year, 'remove constraints from'):
            for constr in handles:
                self.model.remove(constr)
            self.model.update()

    def set_lower_bounds(self, variables, values):
        with solver_call(self.year, 'set lower bounds on'):
            self.model.setAttr('LB', variables, values)
            self.model.update()

    def dispose(self):
        self.model.dispose()
        if self.env is not None:
            self.env.dispose()


def model_file_name(year, use_benders):
    if not use_benders and year == 0:
        return 'netscore.mps'
    return f'bend_{year}.mps'


def start_env(output_level):
    env = Env(empty=True)
    env.setParam('OutputFlag', 1 if output_level == 0 else 0)
    env.setParam('LogToConsole', 1 if output_level == 0 else 0)
    env.start()
    return env


def wrap_models(models, config, envs=None):
    """Wrap already-built gurobipy models (index = year) as year models."""
    year_models = []
    for year, model in enumerate(models):
        env = envs[year] if envs is not None else None
        year_model = YearModel(year, model, env)
        if config.solver_params:
            year_model.set_params(config.solver_params)
        if year > 0:
            year_model.set_params({'Method': 1})
        year_models.append(year_model)
    return year_models


def load_year_models(config):
    models, envs = [], []
    for year in range(config.n_years + 1):
        file_name = os.path.join(config.prepdata_directory, model_file_name(year, config.use_benders))
        if config.verbose:
            logger.info(f"Reading {file_name}")
        if not os.path.isfile(file_name):
            raise ModelLoadError(f"Model file not found: {file_name}")
        try:
            env = start_env(config.output_level)
            models.append(gurobipy.read(file_name, env))
            envs.append(env)
        except gurobipy.GurobiError as exc:
            raise ModelLoadError(f"Could not read {file_name}: {exc}") from exc

    return wrap_models(models, config, envs)
