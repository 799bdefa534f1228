import os
import tomllib
from dataclasses import dataclass, field, fields

EMISSION_OBJECTIVES = ('EmCO2', 'CO2')


@dataclass(frozen=True)
class EngineConfig:
    """Run-wide settings shared by every component of the engine.

    output_level follows the runner convention: 0 prints solver logs and
    progress, 1 silences the solver, 2 also silences progress messages.
    """

    n_years: int
    use_benders: bool = True
    n_events: int = 0
    sustainability_objectives: tuple = ()
    sustainability_metrics: tuple = ()
    output_level: int = 1
    max_iterations: int = 1000
    underestimate_tolerance: float = 0.999
    infeasible_objective: float = 1.0e30
    event_infeasible_cost: float = 1.0e10
    resiliency_infeasible_score: float = 1.0e9
    subproblem_workers: int = 1
    prepdata_directory: str = 'prepdata'
    results_directory: str = None
    write_cuts: bool = False
    solver_params: dict = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'sustainability_objectives', tuple(self.sustainability_objectives))
        object.__setattr__(self, 'sustainability_metrics', tuple(self.sustainability_metrics))

        if self.n_years < 1:
            raise ValueError(f"n_years must be at least 1, got {self.n_years}")
        if self.n_events < 0:
            raise ValueError(f"n_events must be non-negative, got {self.n_events}")
        if not 0.0 < self.underestimate_tolerance <= 1.0:
            raise ValueError(f"underestimate_tolerance must be in (0, 1], got {self.underestimate_tolerance}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {self.max_iterations}")
        if self.subproblem_workers < 1:
            raise ValueError(f"subproblem_workers must be at least 1, got {self.subproblem_workers}")
        if len(self.sustainability_metrics) < len(self.sustainability_objectives):
            raise ValueError("Every sustainability objective needs a matching sustainability metric")

    @property
    def objective_count(self):
        return 1 + len(self.sustainability_objectives) + (1 if self.n_events > 0 else 0)

    @property
    def verbose(self):
        return self.output_level < 2

    def is_emission_objective(self, i):
        return self.sustainability_objectives[i] in EMISSION_OBJECTIVES


def load_config(config_path):
    with open(config_path, 'rb') as src:
        data = tomllib.load(src)

    engine = data.get('engine', data)
    known = {f.name for f in fields(EngineConfig)}
    unknown = set(engine) - known
    if unknown:
        raise ValueError(f"Unknown engine settings in {os.path.basename(config_path)}: {sorted(unknown)}")

    return EngineConfig(**engine)
