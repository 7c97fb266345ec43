"""
evoart/render.py - Preview images of phenotypes
"""
import logging
import math
import os
from typing import List, Tuple

import numpy as np
from PIL import Image, ImageDraw

from .gp_individual import GPPatternIndividual
from .grammatical import GERadiusDrawingIndividual, GrammaticalEvolutionIndividual
from .individual import BinaryPatternIndividual, Individual
from .superformula import SuperFormulaIndividual

logger = logging.getLogger(__name__)

BACKGROUND = 0
FOREGROUND = 255


class Renderer:
    """Samples individuals and turns the samples into grayscale Pillow images"""

    def __init__(self, padding: int = 4):
        self.padding = padding

    def create_coordinate_grids(self, size: Tuple[int, int]) -> Tuple[np.ndarray, np.ndarray]:
        """Pixel-centre coordinates spanning [-1, 1) on both axes"""
        height, width = size
        x = np.arange(width) / width * 2 - 1
        y = np.arange(height) / height * 2 - 1
        X, Y = np.meshgrid(x, y)
        return X, Y

    def sample_pattern(self, individual: Individual, size: Tuple[int, int] = (64, 64)) -> np.ndarray:
        """Evaluate an f(x, y) individual on every pixel"""
        X, Y = self.create_coordinate_grids(size)
        evaluate = np.vectorize(individual.evaluate, otypes=[float])
        return evaluate(X, Y)

    @staticmethod
    def normalize(values: np.ndarray) -> np.ndarray:
        """Map any real values into [0, 1] through tanh"""
        return (np.tanh(values) + 1) / 2

    def render_pattern(self, individual: Individual, size: Tuple[int, int] = (64, 64)) -> Image.Image:
        values = self.normalize(self.sample_pattern(individual, size))
        return Image.fromarray((values * 255).astype(np.uint8))

    def render_polar(self, points: List[Tuple[float, float]], size: Tuple[int, int] = (128, 128)) -> Image.Image:
        """Draw (angle, radius) samples as a closed curve around the image centre"""
        height, width = size
        image = Image.new('L', (width, height), BACKGROUND)
        draw = ImageDraw.Draw(image)

        radii = [r for _, r in points]
        max_radius = max((abs(r) for r in radii), default=0.0)
        centre_x, centre_y = width / 2, height / 2

        if not points or max_radius == 0 or min(radii) == max(radii):
            logger.debug("Degenerate radius range, drawing default circle")
            radius = min(width, height) / 4
            draw.ellipse([centre_x - radius, centre_y - radius, centre_x + radius, centre_y + radius],
                         outline=FOREGROUND)
            return image

        scale = (min(width, height) - 2 * self.padding) / (2 * max_radius)
        xy = [(centre_x + r * scale * math.cos(t), centre_y + r * scale * math.sin(t)) for t, r in points]
        draw.line(xy + [xy[0]], fill=FOREGROUND, width=1)
        return image

    def render_bits(self, individual: BinaryPatternIndividual, size: Tuple[int, int] = (64, 64),
                    grid: int = 8) -> Image.Image:
        bits = np.array(individual.get_phenotype()[:grid * grid], dtype=np.uint8)
        bits = np.pad(bits, (0, grid * grid - len(bits))).reshape(grid, grid)
        image = Image.fromarray(bits * FOREGROUND)
        height, width = size
        return image.resize((width, height), Image.Resampling.NEAREST)

    def render(self, individual: Individual, size: Tuple[int, int] = (64, 64)) -> Image.Image:
        """Pick the preview style matching the individual's representation"""
        if isinstance(individual, GERadiusDrawingIndividual):
            return self.render_polar(individual.polar_points(), size)
        if isinstance(individual, SuperFormulaIndividual):
            return self.render_polar(individual.polar_points(), size)
        if isinstance(individual, (GrammaticalEvolutionIndividual, GPPatternIndividual)):
            return self.render_pattern(individual, size)
        if isinstance(individual, BinaryPatternIndividual):
            return self.render_bits(individual, size)
        raise TypeError(f"No preview for {type(individual).__name__}")

    def save_population(self, population: List[Individual], directory: str,
                        size: Tuple[int, int] = (64, 64)) -> List[str]:
        """Write one PNG per individual, named by population index"""
        os.makedirs(directory, exist_ok=True)
        filenames = []
        for i, individual in enumerate(population):
            filename = os.path.join(directory, f"ind_{i:02d}.png")
            self.render(individual, size).save(filename)
            filenames.append(filename)
        return filenames
