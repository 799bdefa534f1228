"""Small gurobipy models shared by the engine tests.

expansion: one operating year, demand 5 served by dispatch g (capped by the
master capacity) or unserved demand at 100 per unit. The master starts with
one unit of capacity and may invest up to 4 more at 10 per unit, so the
optimum is 40 + 5 = 45.

shortage: like expansion but with no unserved-demand variable, so a zero
capacity makes the year infeasible. Optimum 10 * 5 + 5 = 55.

contingency: two years; year 1 may shed load, year 2 may not. The master
carries one free investment column (no cost, at most 4) so a floor above 4
makes it infeasible.
"""

import pytest
from gurobipy import GRB, Env, Model

from config import EngineConfig
from index_registry import IndexRegistry
from solver_adapter import wrap_models

DEMAND = 5.0


def make_env():
    env = Env(empty=True)
    env.setParam('OutputFlag', 0)
    env.start()
    return env


def _finish(model):
    model.update()
    return model


def expansion_master():
    model = Model('master', env=make_env())
    theta = model.addVar(lb=0, name='theta_1')
    cap = model.addVar(lb=1, name='cap_1')
    inv = model.addVar(lb=0, ub=4, name='inv_1')
    model.addConstr(cap - inv <= 1, name='build_1')
    model.setObjective(theta + 10 * inv, GRB.MINIMIZE)
    return _finish(model)


def expansion_subproblem(year=1):
    model = Model(f'year_{year}', env=make_env())
    g = model.addVar(lb=0, name='gen')
    em = model.addVar(lb=0, name='em_co2')
    u = model.addVar(lb=0, name='unserved')
    model.addConstr(em - 0.5 * g == 0, name='emissions')
    model.addConstr(-g - u <= -DEMAND, name='balance')
    model.setObjective(g + 100 * u, GRB.MINIMIZE)
    return _finish(model)


def expansion_direct():
    model = Model('netscore', env=make_env())
    cap = model.addVar(lb=1, name='cap_1')
    inv = model.addVar(lb=0, ub=4, name='inv_1')
    em = model.addVar(lb=0, name='em_co2')
    u = model.addVar(lb=0, name='unserved')
    g = model.addVar(lb=0, name='gen')
    model.addConstr(em - 0.5 * g == 0, name='emissions')
    model.addConstr(-g - u <= -DEMAND, name='balance')
    model.addConstr(cap - inv <= 1, name='build_1')
    model.addConstr(g - cap <= 0, name='capacity_1')
    model.setObjective(10 * inv + g + 100 * u, GRB.MINIMIZE)
    return _finish(model)


def expansion_registry():
    return IndexRegistry.from_entries(
        capacity=[(1, 0)],
        investment=[(1, 0)],
        emissions=[(1, 0)],
        unserved_demand=[(1, 0)],
        node_balance=[(1, 0)],
        minimum_investment=[(1, 0)],
    )


def expansion_config(**overrides):
    settings = dict(n_years=1, use_benders=True, sustainability_objectives=('CO2',),
                    sustainability_metrics=('CO2',), output_level=2)
    settings.update(overrides)
    return EngineConfig(**settings)


def shortage_master():
    model = Model('master', env=make_env())
    theta = model.addVar(lb=0, name='theta_1')
    cap = model.addVar(lb=0, ub=10, name='cap_1')
    model.setObjective(theta + 10 * cap, GRB.MINIMIZE)
    return _finish(model)


def shortage_subproblem(year=1):
    model = Model(f'year_{year}', env=make_env())
    g = model.addVar(lb=0, name='gen')
    model.addConstr(-g <= -DEMAND, name='balance')
    model.setObjective(g, GRB.MINIMIZE)
    return _finish(model)


def shortage_registry(n_years=1):
    return IndexRegistry.from_entries(
        capacity=[(year, 0) for year in range(1, n_years + 1)],
        node_balance=[(year, 0) for year in range(1, n_years + 1)],
    )


def contingency_master():
    model = Model('master', env=make_env())
    theta = [model.addVar(lb=0, name=f'theta_{year}') for year in (1, 2)]
    cap = [model.addVar(lb=0, ub=10, name=f'cap_{year}') for year in (1, 2)]
    model.addVar(lb=0, ub=4, name='inv_1')
    model.setObjective(theta[0] + theta[1] + 10 * cap[0] + 10 * cap[1], GRB.MINIMIZE)
    return _finish(model)


def contingency_subproblem_with_shedding():
    model = Model('year_1', env=make_env())
    g = model.addVar(lb=0, name='gen')
    u = model.addVar(lb=0, name='unserved')
    model.addConstr(-g - u <= -DEMAND, name='balance')
    model.setObjective(g + 100 * u, GRB.MINIMIZE)
    return _finish(model)


def contingency_direct():
    model = Model('netscore', env=make_env())
    cap = [model.addVar(lb=0, ub=10, name=f'cap_{year}') for year in (1, 2)]
    model.addVar(lb=0, ub=4, name='inv_1')
    u = model.addVar(lb=0, name='unserved_1')
    g1 = model.addVar(lb=0, name='gen_1')
    g2 = model.addVar(lb=0, name='gen_2')
    model.addConstr(-g1 - u <= -DEMAND, name='balance_1')
    model.addConstr(-g2 <= -DEMAND, name='balance_2')
    model.addConstr(g1 - cap[0] <= 0, name='capacity_1')
    model.addConstr(g2 - cap[1] <= 0, name='capacity_2')
    model.setObjective(10 * cap[0] + 10 * cap[1] + g1 + 100 * u + g2, GRB.MINIMIZE)
    return _finish(model)


def contingency_registry():
    return IndexRegistry.from_entries(
        capacity=[(1, 0), (2, 0)],
        investment=[(1, 0)],
        unserved_demand=[(1, 1)],
        node_balance=[(1, 0), (2, 0)],
        minimum_investment=[(1, 0)],
    )


def contingency_config(**overrides):
    settings = dict(n_years=2, use_benders=True, n_events=2, output_level=2)
    settings.update(overrides)
    return EngineConfig(**settings)


@pytest.fixture
def expansion_engine():
    from benders import BendersEngine

    config = expansion_config()
    models = wrap_models([expansion_master(), expansion_subproblem()], config)
    return BendersEngine(config, expansion_registry(), models)


@pytest.fixture
def direct_engine():
    from benders import BendersEngine

    config = expansion_config(use_benders=False)
    models = wrap_models([expansion_direct(), expansion_subproblem()], config)
    return BendersEngine(config, expansion_registry(), models)


@pytest.fixture
def shortage_engine():
    from benders import BendersEngine

    config = EngineConfig(n_years=1, output_level=2)
    models = wrap_models([shortage_master(), shortage_subproblem()], config)
    return BendersEngine(config, shortage_registry(), models)


def build_contingency_engine(use_benders=True):
    from benders import BendersEngine

    config = contingency_config(use_benders=use_benders)
    year_zero = contingency_master() if use_benders else contingency_direct()
    models = wrap_models([year_zero, contingency_subproblem_with_shedding(), shortage_subproblem(2)], config)
    return BendersEngine(config, contingency_registry(), models)
