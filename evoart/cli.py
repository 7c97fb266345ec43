"""
evoart/cli.py - Command-line interface
"""
import json
import logging
import os
import random

import click

from .config import VARIANTS, EvolutionConfig, get_variant
from .evolution import EvolutionaryAlgorithm
from .expression import compile_expression
from .grammar import image_pattern_grammar, math_expression_grammar, polar_drawing_grammar
from .render import Renderer

GRAMMARS = {
    'pattern': (image_pattern_grammar, '<pattern>'),
    'radius': (polar_drawing_grammar, '<polar>'),
    'math': (math_expression_grammar, '<expr>'),
}


def _parse_numbers(text, kind=float):
    return [kind(part) for part in text.replace(',', ' ').split()]


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Debug logging')
def cli(verbose):
    """evoart - Interactive evolution of generative expressions"""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')


@cli.command()
@click.option('--genome', '-g', help='Comma separated codons (random when omitted)')
@click.option('--grammar', 'grammar_name', type=click.Choice(list(GRAMMARS)), default='pattern',
              help='Built-in grammar to derive with')
@click.option('--length', default=100, help='Length of the random genome')
@click.option('--max-derivations', default=1000, help='Maximum expansion steps')
@click.option('--max-depth', default=15, help='Maximum parenthesis nesting')
@click.option('--seed', type=int, help='Random seed')
@click.option('--show-grammar', is_flag=True, help='Print the grammar rules first')
def derive(genome, grammar_name, length, max_derivations, max_depth, seed, show_grammar):
    """Derive an expression from a genome"""
    factory, start_symbol = GRAMMARS[grammar_name]
    grammar = factory()

    if genome:
        try:
            codons = _parse_numbers(genome, int)
        except ValueError:
            raise click.BadParameter(f"not a list of integers: {genome}", param_hint='--genome')
    else:
        rng = random.Random(seed)
        codons = [rng.randrange(256) for _ in range(length)]
        click.echo(f"Genome: {','.join(str(c) for c in codons)}")

    if show_grammar:
        click.echo(str(grammar))

    derivation = grammar.derive(start_symbol, codons, max_derivations, max_depth)
    click.echo(grammar.derives_to_string(derivation))


@cli.command('compile')
@click.argument('expression')
@click.option('--vars', 'variables', default='x,y', help='Comma separated variable names')
@click.option('--at', 'point', default='0,0', help='Comma separated values, one per variable')
@click.option('--fallback', default=0.0, help='Value returned when evaluation fails')
def compile_command(expression, variables, point, fallback):
    """Evaluate an expression at one point"""
    names = tuple(name.strip() for name in variables.split(',') if name.strip())
    try:
        values = _parse_numbers(point)
    except ValueError:
        raise click.BadParameter(f"not a list of numbers: {point}", param_hint='--at')
    if len(values) != len(names):
        raise click.BadParameter(f"expected {len(names)} values for {', '.join(names)}", param_hint='--at')

    compiled = compile_expression(expression, names, fallback)
    if not compiled.valid:
        click.echo(f"Could not parse {expression!r}; using fallback {fallback}")
    click.echo(repr(compiled(*values)))


def _describe(individual, limit=70):
    text = str(individual.get_phenotype())
    if isinstance(individual.get_phenotype(), list):
        text = ''.join(str(bit) for bit in individual.get_phenotype())
    return text if len(text) <= limit else text[:limit] + '...'


@cli.command()
@click.option('--variant', '-m', type=click.Choice(list(VARIANTS)), default='pattern',
              help='Individual representation')
@click.option('--population', '-p', default=16, help='Population size')
@click.option('--generations', '-g', default=10, help='Stop after this generation')
@click.option('--mutation-rate', default=0.1, help='Mutation rate (0.0-1.0)')
@click.option('--out', '-o', default='out/', help='Output directory')
@click.option('--size', default=64, help='Preview size in pixels')
@click.option('--seed', type=int, help='Random seed')
@click.option('--no-render', is_flag=True, help='Skip writing preview images')
def evolve(variant, population, generations, mutation_rate, out, size, seed, no_render):
    """Evolve a population interactively.

    Each round prints the population and asks for the indices of the
    individuals you like; repeating an index raises its fitness again and a
    leading '-' lowers it. Enter 'u' to undo, 'r' to reset or 'q' to quit.
    """
    config = EvolutionConfig(population_size=population, mutation_rate=mutation_rate)
    rng = random.Random(seed) if seed is not None else None
    ea = EvolutionaryAlgorithm(get_variant(variant), config=config, rng=rng)
    renderer = Renderer()
    os.makedirs(out, exist_ok=True)

    while ea.generation < generations:
        click.echo(f"\nGeneration {ea.generation} (average fitness {ea.get_average_fitness():.2f})")
        if not no_render:
            gen_dir = os.path.join(out, f"gen_{ea.generation:04d}")
            renderer.save_population(ea.population, gen_dir, (size, size))
            click.echo(f"Previews written to {gen_dir}/")
        for i, individual in enumerate(ea.population):
            marker = '*' if individual.selected else ' '
            click.echo(f"{marker}[{i:2d}] {_describe(individual)}")

        answer = click.prompt("Favourites ('u' undo, 'r' reset, 'q' quit)",
                              default='', show_default=False).strip().lower()
        if answer == 'q':
            break
        if answer == 'u':
            if not ea.undo():
                click.echo("Nothing to undo")
            continue
        if answer == 'r':
            ea.reset()
            continue

        try:
            picks = [(token.startswith('-'), int(token.lstrip('-')))
                     for token in answer.replace(',', ' ').split()]
        except ValueError:
            click.echo(f"Could not read {answer!r}; enter indices such as '0 3 5'")
            continue
        if any(index >= len(ea.population) for _, index in picks):
            click.echo(f"Indices must be between 0 and {len(ea.population) - 1}")
            continue

        for lower, index in picks:
            if lower:
                ea.decrement_fitness(ea.population[index])
            else:
                ea.increment_fitness(ea.population[index])

        if not ea.evolve():
            click.echo(str(ea.last_error))

    summary_file = os.path.join(out, 'population.json')
    with open(summary_file, 'w') as f:
        json.dump({
            'config': config.to_dict(),
            'variant': variant,
            'stats': ea.get_stats(),
            'population': [individual.to_dict() for individual in ea.population],
        }, f, indent=2)
    click.echo(f"\nFinal population saved to {summary_file}")


if __name__ == '__main__':
    cli()
