class ContingencyPattern:
    """Flat on/off vector describing which capacity links survive each event.

    Layout, with E events and stride E + 1:
      - capacity entry i, event e: values[i * stride + e]
      - year j (1-based) trigger bit: values[C * stride + (j - 1) * stride]
      - year j active for event e:   values[C * stride + (j - 1) * stride + e]
    where C is the size of the capacity table.
    """

    def __init__(self, values, n_capacities, n_years, n_events):
        self.values = tuple(float(v) for v in values)
        self.n_capacities = n_capacities
        self.n_years = n_years
        self.n_events = n_events
        self.stride = n_events + 1

        expected = self.stride * (n_capacities + (n_years if n_events > 0 else 0))
        if len(self.values) < expected:
            raise ValueError(f"Contingency pattern has {len(self.values)} values, expected at least {expected}")

    @classmethod
    def baseline(cls, n_capacities, n_years, n_events=0):
        # every capacity link active, no year triggered
        stride = n_events + 1
        values = [1.0 if e == 0 else 0.0 for _ in range(n_capacities) for e in range(stride)]
        if n_events > 0:
            values += [0.0] * (stride * n_years)
        return cls(values, n_capacities, n_years, n_events)

    def mask(self, capacity_index, event=0):
        return self.values[capacity_index * self.stride + event]

    def _year_slot(self, year):
        return self.n_capacities * self.stride + (year - 1) * self.stride

    def year_triggered(self, year):
        if self.n_events == 0:
            return False
        return self.values[self._year_slot(year)] == 1

    def year_active(self, year, event):
        if self.n_events == 0:
            return False
        return self.values[self._year_slot(year) + event] == 1

    def events(self):
        return range(1, self.n_events + 1)

    def active_events(self, year):
        return [event for event in self.events() if self.year_active(year, event)]
