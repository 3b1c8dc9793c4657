"""
Ridge-regularized least squares for the OPR system Ax = b.
"""
import numpy as np
from scipy.linalg import cho_factor, cho_solve
from sklearn.linear_model import LinearRegression


def ridgeSolve(A, b, lam):
    """
    Solve the regularized normal equations (AᵗA + λI) x = Aᵗb.

    AᵗA is singular whenever two robots always play together, which is common
    early in an event.  Any λ > 0 makes AᵗA + λI symmetric positive-definite,
    so it is solved with a Cholesky factorization.  λ = 0 is ordinary least
    squares - if A does not have full column rank there, the minimum-norm
    least-squares solution is returned instead of failing.

    Parameters
    ----------
    A : 2-D array
        Incidence matrix, alliance observations x robots.
    b : 1-D array
        Alliance scores aligned with the rows of A.
    lam : float
        Regularization strength, must be >= 0.

    Returns
    -------
    x : 1-D array
        Rate per robot, indexed like the columns of A.
    """
    if lam < 0:
        raise ValueError(f'ridge lambda must be non-negative, got {lam}')

    A = np.asarray(A, dtype=float)
    b = np.asarray(b, dtype=float)
    nRobots = A.shape[1]

    # nothing to learn from - every robot's rate is zero
    if A.shape[0] == 0:
        return np.zeros(nRobots)

    if lam == 0 and np.linalg.matrix_rank(A) < nRobots:
        return minimumNormSolve(A, b)

    AtA = A.T @ A + lam * np.eye(nRobots)
    Atb = A.T @ b
    return cho_solve(cho_factor(AtA), Atb)


def minimumNormSolve(A, b):
    # LinearRegression without an intercept is plain lstsq, which picks the
    # minimum-norm solution when the system is rank deficient
    lin = LinearRegression(fit_intercept=False)
    lin.fit(A, b)
    return np.asarray(lin.coef_, dtype=float)
