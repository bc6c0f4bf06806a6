# services/random_source.py
import math


def seeded_random(seed: int) -> float:
    """
    Pseudo-aleatorio determinista en [0, 1): parte fraccionaria de sin(seed) * 10000.

    Función pura: la misma semilla siempre produce el mismo valor.
    """
    x = math.sin(seed) * 10000
    return x - math.floor(x)
