"""Statistical functions for comparing variables across observations.

This module provides reusable statistical functions with no project-specific
dependencies.
"""

import math
from collections.abc import Sequence


def column_means(vectors: Sequence[Sequence[float]], size: int) -> list[float]:
    """Average each of the `size` columns over all vectors.

    Returns all zeros when there are no vectors.
    """
    n = len(vectors)
    if n == 0:
        return [0.0] * size

    return [sum(vector[i] for vector in vectors) / n for i in range(size)]


def pearson_correlation_matrix(
    vectors: Sequence[Sequence[float]],
    size: int,
) -> list[list[float]]:
    """Calculate the pairwise Pearson correlation between columns.

    Uses population statistics: the covariance of columns i and j is the mean
    over all vectors of (x_i - mean_i)(x_j - mean_j), and the standard
    deviation of a column is the square root of its covariance with itself.

    The correlation of two columns is cov(i, j) / (std_i * std_j). Whenever
    one of the columns has zero variance the correlation is defined as 0.

    Only the upper triangle is computed and mirrored, so the result is exactly
    symmetric. The diagonal is exactly 1.0 for every column with non-zero
    variance, and all values are clamped to [-1, 1].

    Args:
        vectors: One observation per vector, each with `size` values
        size: Number of columns (variables)

    Returns:
        A size x size correlation matrix as nested lists

    Example:
        >>> m = pearson_correlation_matrix([[1.0, 2.0], [2.0, 4.0], [3.0, 5.0]], 2)
        >>> round(m[0][1], 3)
        0.982
    """
    matrix = [[0.0] * size for _ in range(size)]

    n = len(vectors)
    if n == 0:
        return matrix

    means = column_means(vectors, size)
    deviations = [[vector[i] - means[i] for i in range(size)] for vector in vectors]

    covariance = [[0.0] * size for _ in range(size)]
    for i in range(size):
        for j in range(i, size):
            covariance[i][j] = sum(d[i] * d[j] for d in deviations) / n

    std_devs = []
    for i in range(size):
        column = [vector[i] for vector in vectors]
        # A constant column has no variance, even if rounding in the mean
        # leaves a tiny residual
        if max(column) == min(column):
            std_devs.append(0.0)
        else:
            std_devs.append(math.sqrt(covariance[i][i]))

    for i in range(size):
        if std_devs[i] > 0:
            matrix[i][i] = 1.0

        for j in range(i + 1, size):
            if std_devs[i] > 0 and std_devs[j] > 0:
                value = covariance[i][j] / (std_devs[i] * std_devs[j])
                value = max(-1.0, min(1.0, value))
            else:
                value = 0.0

            matrix[i][j] = value
            matrix[j][i] = value

    return matrix
