# thetasim/tests/test_time_integration.py
"""Pytest checks for the θ-method trajectory: step grid, exact updates, errors.
Run with:  pytest -q
"""
from __future__ import annotations

import math

import numpy as np
import pytest
from scipy import sparse

from thetasim.errors import AssemblyError, InvalidConfigError, SingularSystemError
from thetasim.models.snapshot import SystemSnapshot
from thetasim.solver.linear import solve_dense
from thetasim.solver.time_integration import (
    IntegratorConfig,
    ThetaMethodIntegrator,
    collect,
    final_state,
    integrate,
)


def _scalar(M, A, b):
    return lambda t: SystemSnapshot(M, A, b)


@pytest.mark.parametrize(
    "t0, t_final, dt, expected",
    [
        (0.0, 1.0, 0.1, 10),
        (0.0, 10.0, 0.05, 200),
        (0.0, 1.0, 0.3, 4),
        (2.0, 2.5, 1.0, 1),
        (-1.0, 1.0, 0.7, 3),
    ],
)
def test_step_count(t0, t_final, dt, expected):
    traj = integrate([1.0], t0, t_final, dt, 0.5, _scalar(1.0, 0.0, 0.0))
    assert traj.n_steps == expected
    assert len(list(traj)) == expected


def test_times_evenly_spaced_and_last_step_clipped():
    times = [t for t, _ in integrate([0.0], 0.0, 1.0, 0.3, 1.0, _scalar(1.0, 0.0, 1.0))]
    assert np.allclose(times, [0.3, 0.6, 0.9, 1.0])
    gaps = np.diff([0.0] + times)
    assert np.all(gaps > 0.0)
    assert np.allclose(gaps[:-1], 0.3)
    assert gaps[-1] <= 0.3
    # never overshoots
    assert times[-1] == 1.0


def test_clipped_last_step_uses_short_dt():
    # u' = 1 integrates exactly: u(t) = t at every emitted time, including the clipped one
    for t, u in integrate([0.0], 0.0, 1.0, 0.3, 1.0, _scalar(1.0, 0.0, 1.0)):
        assert math.isclose(u[0], t, abs_tol=1e-12)


def test_identity_stays_put():
    u0 = np.array([1.0, -2.0, 3.5])
    traj = integrate(u0, 0.0, 1.0, 0.1, 1.0, _scalar(np.eye(3), np.zeros((3, 3)), np.zeros(3)))
    for _, u in traj:
        assert np.allclose(u, u0, rtol=1e-13, atol=0.0)


def test_trapezoid_constant_forcing_exact():
    c, dt = 2.5, 0.1
    prev = 0.0
    for _, u in integrate([0.0], 0.0, 1.0, dt, 0.5, _scalar(1.0, 0.0, c)):
        assert math.isclose(u[0], prev + c * dt, rel_tol=1e-13, abs_tol=1e-13)
        prev = u[0]


def test_implicit_euler_decay_closed_form():
    lam, dt = 3.0, 0.05
    prev = 1.0
    for _, u in integrate([1.0], 0.0, 1.0, dt, 1.0, _scalar(1.0, lam, 0.0)):
        assert math.isclose(u[0], prev / (1.0 + lam * dt), rel_tol=1e-13)
        prev = u[0]


def test_crank_nicolson_decay_amplification():
    lam, dt = 4.0, 0.1
    g = (1.0 - 0.5 * lam * dt) / (1.0 + 0.5 * lam * dt)
    times, states = collect(integrate([1.0], 0.0, 1.0, dt, 0.5, _scalar(1.0, lam, 0.0)))
    assert np.allclose(states[:, 0], g ** np.arange(times.size), rtol=1e-12)


def test_explicit_euler():
    lam, dt = 2.0, 0.1
    _, u = final_state(integrate([1.0], 0.0, 1.0, dt, 0.0, _scalar(1.0, lam, 0.0)))
    assert math.isclose(u[0], (1.0 - lam * dt) ** 10, rel_tol=1e-12)


def test_assemble_called_at_theta_time():
    seen = []

    def assemble(t):
        seen.append(t)
        return SystemSnapshot(1.0, 0.0, 0.0)

    list(integrate([0.0], 0.0, 1.0, 0.25, 0.5, assemble))
    assert np.allclose(seen, [0.125, 0.375, 0.625, 0.875])


def test_time_dependent_forcing_crank_nicolson():
    # u' = 2t, u(0) = 0: midpoint evaluation is exact for a linear forcing
    traj = integrate([0.0], 0.0, 2.0, 0.1, 0.5, lambda t: SystemSnapshot(1.0, 0.0, 2.0 * t))
    for t, u in traj:
        assert math.isclose(u[0], t * t, rel_tol=1e-12, abs_tol=1e-12)


def test_sparse_system_matches_dense():
    n = 6
    A = sparse.diags([-1.0, 2.0, -1.0], [-1, 0, 1], shape=(n, n), format="csr")
    M = sparse.identity(n, format="csr")
    b = np.linspace(0.0, 1.0, n)
    u0 = np.ones(n)
    _, u_sp = final_state(integrate(u0, 0.0, 1.0, 0.1, 0.5, lambda t: SystemSnapshot(M, A, b)))
    _, u_de = final_state(integrate(
        u0, 0.0, 1.0, 0.1, 0.5, lambda t: SystemSnapshot(M.toarray(), A.toarray(), b), solve_dense
    ))
    assert np.allclose(u_sp, u_de, rtol=1e-12, atol=1e-12)


def test_tuple_snapshot_accepted():
    _, u = final_state(integrate([1.0], 0.0, 1.0, 0.5, 1.0, lambda t: (1.0, 1.0, 0.0)))
    assert math.isclose(u[0], 1.0 / 1.5 ** 2)


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(dt=0.0),
        dict(dt=-0.1),
        dict(theta=-0.1),
        dict(theta=1.1),
        dict(t_final=0.0),
        dict(t_final=-1.0),
        dict(dt=float("nan")),
    ],
)
def test_invalid_config(kwargs):
    args = dict(dt=0.1, theta=0.5, t0=0.0, t_final=1.0)
    args.update(kwargs)
    with pytest.raises(InvalidConfigError):
        integrate([0.0], args["t0"], args["t_final"], args["dt"], args["theta"], _scalar(1.0, 0.0, 0.0))


def test_invalid_config_is_eager():
    calls = []

    def assemble(t):
        calls.append(t)
        return SystemSnapshot(1.0, 0.0, 0.0)

    with pytest.raises(InvalidConfigError):
        integrate([0.0], 1.0, 1.0, 0.1, 0.5, assemble)
    assert calls == []


def test_state_machine_and_not_restartable():
    traj = integrate([0.0], 0.0, 0.3, 0.1, 1.0, _scalar(1.0, 0.0, 1.0))
    assert traj.state == "NotStarted"
    assert iter(traj) is traj
    next(traj)
    assert traj.state == "Stepping"
    rest = list(traj)
    assert len(rest) == 2
    assert traj.state == "Finished"
    assert list(traj) == []


def test_early_stop_keeps_last():
    traj = integrate([0.0], 0.0, 1.0, 0.1, 1.0, _scalar(1.0, 0.0, 1.0))
    for k, (t, _) in enumerate(traj):
        if k == 2:
            break
    t_last, u_last = traj.last
    assert math.isclose(t_last, 0.3)
    assert math.isclose(u_last[0], 0.3)
    assert traj.steps_taken == 3


def test_failing_assemble_aborts_at_step_k():
    class Boom(RuntimeError):
        pass

    def assemble(t):
        if t > 0.25:
            raise Boom("assembly failed")
        return SystemSnapshot(1.0, 0.0, 1.0)

    traj = integrate([0.0], 0.0, 1.0, 0.1, 1.0, assemble)
    emitted = []
    with pytest.raises(Boom):
        for t, u in traj:
            emitted.append((t, u.copy()))
    assert [round(t, 12) for t, _ in emitted] == [0.1, 0.2]
    assert np.allclose([u[0] for _, u in emitted], [0.1, 0.2])
    t_last, u_last = traj.last
    assert math.isclose(t_last, 0.2) and math.isclose(u_last[0], 0.2)
    assert traj.state == "Finished"
    assert list(traj) == []


def test_singular_solve_reports_theta_time():
    # K = M/dt + θA = 0 for M = 1, A = -1/(θ dt)
    dt, theta = 0.1, 0.5
    traj = integrate([1.0], 0.0, 1.0, dt, theta, _scalar(1.0, -1.0 / (theta * dt), 0.0))
    with pytest.raises(SingularSystemError) as info:
        next(traj)
    assert math.isclose(info.value.t, 0.05)
    t_last, u_last = traj.last
    assert t_last == 0.0 and u_last[0] == 1.0


def test_failing_solve_callback_at_step_k():
    calls = {"n": 0}

    def solve(K, rhs):
        calls["n"] += 1
        if calls["n"] == 3:
            raise SingularSystemError("factorization failed")
        return solve_dense(K, rhs)

    traj = integrate([0.0], 0.0, 1.0, 0.1, 1.0, _scalar(1.0, 0.0, 1.0), solve)
    first = [next(traj), next(traj)]
    with pytest.raises(SingularSystemError) as info:
        next(traj)
    assert math.isclose(info.value.t, 0.3)
    assert np.allclose([u[0] for _, u in first], [0.1, 0.2])
    assert math.isclose(traj.last[1][0], 0.2)


def test_wrong_snapshot_size():
    traj = integrate([0.0, 0.0], 0.0, 1.0, 0.1, 1.0, _scalar(1.0, 0.0, 0.0))
    with pytest.raises(AssemblyError):
        next(traj)


def test_emitted_states_are_copies():
    traj = integrate([0.0], 0.0, 0.3, 0.1, 1.0, _scalar(1.0, 0.0, 1.0))
    _, u = next(traj)
    u[:] = 100.0
    _, u2 = next(traj)
    assert math.isclose(u2[0], 0.2)


def test_collect_every():
    times, states = collect(integrate([0.0], 0.0, 1.0, 0.1, 1.0, _scalar(1.0, 0.0, 1.0)), every=3)
    assert np.allclose(times, [0.0, 0.3, 0.6, 0.9, 1.0])
    assert states.shape == (5, 1)


def test_integrator_class():
    integ = ThetaMethodIntegrator(solve_dense, dt=0.05, theta=1.0)
    t, u = final_state(integ.solve(_scalar(1.0, 3.0, 0.0), [1.0], 0.0, 1.0))
    assert t == 1.0
    assert math.isclose(u[0], (1.0 + 3.0 * 0.05) ** -20, rel_tol=1e-12)
    with pytest.raises(InvalidConfigError):
        ThetaMethodIntegrator(solve_dense, dt=0.1, theta=2.0)


def test_config_times():
    cfg = IntegratorConfig(dt=0.3, theta=0.5, t0=0.0, t_final=1.0).validate()
    assert cfg.n_steps == 4
    t = cfg.times()
    assert t[0] == 0.0 and t[-1] == 1.0 and t.size == 5


def test_dt_below_float_resolution():
    with pytest.raises(InvalidConfigError):
        integrate([1.0], 1e16, 1e16 + 8.0, 1.0, 1.0, _scalar(1.0, 1.0, 0.0))


def test_last_interval_never_exceeds_dt():
    cfg = IntegratorConfig(dt=0.1, theta=1.0, t0=0.0, t_final=1.0 + 1e-12).validate()
    assert cfg.n_steps == 11
    gaps = np.diff(cfg.times())
    assert np.all(gaps > 0.0)
    assert gaps[-1] <= 0.1


def test_non_numeric_snapshot():
    traj = integrate([0.0], 0.0, 1.0, 0.1, 1.0, lambda t: ("x", 0.0, 0.0))
    with pytest.raises(AssemblyError) as info:
        next(traj)
    assert math.isclose(info.value.t, 0.1)


def test_non_finite_forcing_is_assembly_fault():
    traj = integrate([0.0], 0.0, 1.0, 0.1, 1.0, _scalar(1.0, 0.0, float("nan")))
    with pytest.raises(AssemblyError):
        next(traj)
    assert traj.state == "Finished"


def test_debug_failure_prints_last_committed_state(capsys):
    def assemble(t):
        if t > 0.15:
            raise RuntimeError("assembly failed")
        return SystemSnapshot(1.0, 0.0, 1.0)

    traj = integrate([0.0], 0.0, 1.0, 0.1, 1.0, assemble, debug=True)
    next(traj)
    with pytest.raises(RuntimeError):
        next(traj)
    out = capsys.readouterr().out
    assert "last committed" in out
    assert "finished=False" in out
