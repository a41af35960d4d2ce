"""GOURMET FUN — Exact combinatorics for the mines multiplier."""

from fractions import Fraction


def factorial(n: int) -> int:
    if n < 0:
        raise ValueError(f"factorial of negative number {n}")
    result = 1
    for i in range(2, n + 1):
        result *= i
    return result


def combinations(n: int, k: int) -> int:
    """C(n, k) by the multiplicative formula; 0 outside 0 <= k <= n."""
    if k < 0 or k > n:
        return 0
    k = min(k, n - k)
    result = 1
    for i in range(1, k + 1):
        # Exact at every step: result is C(n - k + i, i) after iteration i
        result = result * (n - k + i) // i
    return result


def survival_probability(total: int, safe: int, picks: int) -> Fraction:
    """P(first `picks` draws without replacement are all safe)."""
    denominator = combinations(total, picks)
    if denominator == 0:
        return Fraction(0)
    return Fraction(combinations(safe, picks), denominator)


def binomial_pmf(n: int, k: int, p: float = 0.5) -> float:
    if k < 0 or k > n:
        return 0.0
    return combinations(n, k) * (p ** k) * ((1 - p) ** (n - k))
