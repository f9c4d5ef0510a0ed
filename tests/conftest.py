import pytest

HEADER = "Date,Sector,Sector_Weight," + ",".join(f"Beta{i}" for i in range(1, 89))


def _row(date, sector, weight, betas=None, fill=1.0, overrides=None):
    values = list(betas) if betas is not None else [fill] * 88
    for idx, val in (overrides or {}).items():
        values[idx - 1] = val
    return ",".join([date, sector, str(weight)] + [str(v) for v in values])


@pytest.fixture
def beta_row():
    """Build one CSV line: beta_row('2024-01-02', 'Tech', 0.6, overrides={1: 10})."""
    return _row


@pytest.fixture
def beta_csv():
    """Build CSV text from (date, sector, weight[, overrides]) tuples with every beta = fill."""

    def build(rows, fill=1.0):
        lines = [HEADER]
        for spec in rows:
            date, sector, weight = spec[:3]
            overrides = spec[3] if len(spec) > 3 else None
            lines.append(_row(date, sector, weight, fill=fill, overrides=overrides))
        return "\n".join(lines) + "\n"

    return build
