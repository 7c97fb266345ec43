"""
evoart/superformula.py - Gielis superformula individual with a real-valued genome
"""
import logging
import math
from typing import Dict, List, Tuple

from .individual import Individual

logger = logging.getLogger(__name__)

DENOMINATORS = [1, 2, 3, 4, 5, 6, 8, 10, 12]
MIN_RADIUS = 0.1

# Genome layout: [m_numerator, m_denominator, n1, n2, n3, a, b]
SHAPE_GENES = (2, 3, 4)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class SuperFormulaIndividual(Individual):
    """Closed superformula curve r(phi) with m = numerator / denominator"""

    genome_length = 7
    num_points = 1000

    def generate_random_genome(self) -> List[float]:
        rng = self.rng
        return [
            float(rng.randint(1, 20)),
            float(rng.choice(DENOMINATORS)),
            rng.random() * 10 + 0.1,
            rng.random() * 10 + 0.1,
            rng.random() * 10 + 0.1,
            rng.random() * 3 + 0.1,
            rng.random() * 3 + 0.1,
        ]

    def get_parameters(self) -> Dict[str, float]:
        m_numerator, m_denominator, n1, n2, n3, a, b = self.genome
        num = int(_clamp(round(m_numerator), 1, 50))
        den = int(_clamp(round(m_denominator), 1, 12))
        return {
            'm_numerator': num,
            'm_denominator': den,
            'm': num / den,
            'n1': _clamp(n1, 0.01, 20),
            'n2': _clamp(n2, 0.01, 20),
            'n3': _clamp(n3, 0.01, 20),
            'a': _clamp(a, 0.01, 5),
            'b': _clamp(b, 0.01, 5),
        }

    @staticmethod
    def calculate_radius(phi: float, params: Dict[str, float]) -> float:
        """r(phi) = (|cos(m phi / 4) / a|^n2 + |sin(m phi / 4) / b|^n3)^(-1 / n1)"""
        angle = params['m'] * phi / 4.0
        cos_part = max(abs(math.cos(angle) / params['a']), 1e-10)
        sin_part = max(abs(math.sin(angle) / params['b']), 1e-10)

        try:
            total = cos_part ** params['n2'] + sin_part ** params['n3']
            radius = total ** (-1.0 / params['n1'])
        except (OverflowError, ZeroDivisionError):
            logger.debug("Radius overflow at phi=%s", phi)
            return MIN_RADIUS

        if not math.isfinite(radius) or radius <= 0:
            return MIN_RADIUS
        return radius

    def phi_range(self) -> float:
        """Angle after which the curve closes: 8 pi q / gcd(p, 4q)"""
        params = self.get_parameters()
        p, q = params['m_numerator'], params['m_denominator']
        return 8 * math.pi * q / math.gcd(p, 4 * q)

    def polar_points(self) -> List[Tuple[float, float]]:
        """(phi, radius) samples over one closed period"""
        params = self.get_parameters()
        span = self.phi_range()
        points = []
        for i in range(self.num_points):
            phi = i / self.num_points * span
            points.append((phi, self.calculate_radius(phi, params)))
        return points

    def get_phenotype(self) -> str:
        if self._phenotype is None:
            params = self.get_parameters()
            self._phenotype = (
                f"m={params['m_numerator']}/{params['m_denominator']} ({params['m']:.2f}), "
                f"phiRange={self.phi_range() / math.pi:.1f}pi, "
                f"n1={params['n1']:.3f}, n2={params['n2']:.3f}, n3={params['n3']:.3f}, "
                f"a={params['a']:.3f}, b={params['b']:.3f}"
            )
        return self._phenotype

    def mutate(self, rate: float = 0.1) -> None:
        rng = self.rng
        for i in range(len(self.genome)):
            if rng.random() >= rate:
                continue
            if i == 0:
                self.genome[i] = float(_clamp(round(self.genome[i]) + rng.randint(-3, 3), 1, 50))
            elif i == 1:
                self.genome[i] = float(rng.choice(DENOMINATORS))
            elif i in SHAPE_GENES:
                self.genome[i] = _clamp(self.genome[i] + rng.gauss(0, 1) * 0.5, 0.01, 20)
            else:
                self.genome[i] = _clamp(self.genome[i] + rng.gauss(0, 1) * 0.2, 0.01, 5)
        self.invalidate_caches()

    def crossover(self, other: 'SuperFormulaIndividual') -> Tuple['SuperFormulaIndividual', 'SuperFormulaIndividual']:
        """Integer genes are inherited whole, real genes are blended"""
        rng = self.rng
        genome1, genome2 = [], []
        for i, (mine, theirs) in enumerate(zip(self.genome, other.genome)):
            if i in (0, 1):
                if i == 0:
                    mine, theirs = _clamp(round(mine), 1, 50), _clamp(round(theirs), 1, 50)
                else:
                    mine, theirs = round(mine), round(theirs)
                if rng.random() < 0.5:
                    genome1.append(float(mine))
                    genome2.append(float(theirs))
                else:
                    genome1.append(float(theirs))
                    genome2.append(float(mine))
            else:
                high = 20 if i in SHAPE_GENES else 5
                alpha = rng.random()
                genome1.append(_clamp(alpha * mine + (1 - alpha) * theirs, 0.01, high))
                genome2.append(_clamp((1 - alpha) * mine + alpha * theirs, 0.01, high))

        return (type(self)(genome1, self.presentation, rng),
                type(self)(genome2, self.presentation, rng))

    def clone(self) -> 'SuperFormulaIndividual':
        return self._copy_state_to(type(self)(list(self.genome), self.presentation, self.rng))
