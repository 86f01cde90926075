"""
Command-line interface for rendering complex-plane images.

Renders single images, writes the full set of default renders, or serves
renders on demand over HTTP.
"""

import click
import sys
from pathlib import Path
import logging
import time

from .. import __version__
from ..api import FractalRenderer, RenderConfig
from ..core.options import DEFAULT_OPTIONS, load_options_file
from ..rendering.coloring import ColorFunctionRegistry

logger = logging.getLogger(__name__)

OPTION_KEYS = ('xmin', 'xmax', 'ymin', 'ymax', 'zoom', 'width', 'height')


def _base_options(ctx):
    config_file = ctx.obj.get('config_file')
    if config_file:
        return load_options_file(config_file, DEFAULT_OPTIONS)
    return DEFAULT_OPTIONS


def _fail(ctx, e):
    click.echo(f"Error: {e}", err=True)
    if ctx.obj.get('verbose'):
        import traceback
        traceback.print_exc()
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--config', type=click.Path(exists=True), help='JSON file with default rendering options')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress most output')
@click.pass_context
def main(ctx, version, config, verbose, quiet):
    """
    Complex Fractals - render functions over the complex plane.

    Draws Mandelbrot and Newton fractals and direct colorings of acos and
    sqrt as antialiased PNG images.
    """
    # Setup logging
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.INFO,
                            format='%(levelname)s: %(message)s')

    if version:
        click.echo(f"Complex Fractals v{__version__}")
        click.echo(f"Python: {sys.version}")
        if ctx.invoked_subcommand is None:
            sys.exit(0)
    elif ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())

    # Store global options in context
    ctx.ensure_object(dict)
    ctx.obj['config_file'] = config
    ctx.obj['verbose'] = verbose


@main.command()
@click.argument('function')
@click.argument('output', type=click.Path())
@click.option('--xmin', type=float, help='Real axis minimum')
@click.option('--xmax', type=float, help='Real axis maximum')
@click.option('--ymin', type=float, help='Imaginary axis minimum')
@click.option('--ymax', type=float, help='Imaginary axis maximum')
@click.option('--zoom', type=float, help='Magnification about the centre of the bounds')
@click.option('--width', '-w', type=int, help='Image width')
@click.option('--height', '-h', type=int, help='Image height')
@click.option('--workers', type=int, help='Number of processes for parallel rendering')
@click.option('--timeout', type=float, help='Abort the render after this many seconds')
@click.option('--no-metadata', is_flag=True, help='Do not embed render metadata in the PNG')
@click.pass_context
def render(ctx, function, output, workers, timeout, no_metadata, **kwargs):
    """
    Render a single image.

    FUNCTION: mandelbrot, newton, acos or sqrt (unknown names use mandelbrot)
    OUTPUT: Output PNG file path
    """
    try:
        overrides = {k: v for k, v in kwargs.items() if k in OPTION_KEYS and v is not None}
        options = _base_options(ctx).replace(**overrides)

        config = RenderConfig(workers=workers, timeout=timeout, embed_metadata=not no_metadata)
        renderer = FractalRenderer(config)

        click.echo(f"Rendering {function}...")
        start_time = time.time()

        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        renderer.render(output_path, function, options)

        click.echo(f"Render complete: {time.time() - start_time:.2f}s")
        click.echo(f"Saved: {output}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.option('--output-dir', '-o', type=click.Path(), default='.',
              help='Directory for the rendered images')
@click.option('--workers', type=int, help='Number of processes for parallel rendering')
@click.pass_context
def draw_all(ctx, output_dir, workers):
    """Render every color function with the default options."""
    try:
        options = _base_options(ctx)
        renderer = FractalRenderer(RenderConfig(workers=workers))
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        for name in renderer.registry.names():
            filepath = output_path / f"{name}.png"
            renderer.render(filepath, name, options)
            click.echo(f"Successfully drew fractal to {filepath}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.option('--host', default='127.0.0.1', help='Interface to bind')
@click.option('--port', type=int, default=8080, help='Port to listen on')
@click.option('--workers', type=int, default=1, help='Processes per render request')
@click.option('--timeout', type=float, help='Abort renders after this many seconds')
@click.pass_context
def serve(ctx, host, port, workers, timeout):
    """Serve renders over HTTP at /fractals."""
    try:
        try:
            from ..web.app import create_app
        except ImportError:
            click.echo("Error: the web server needs Flask "
                       "(pip install 'complex-fractals[web]')", err=True)
            sys.exit(1)

        app = create_app(_base_options(ctx), RenderConfig(workers=workers, timeout=timeout))
        click.echo(f"Serving fractals at http://{host}:{port}/fractals")
        app.run(host=host, port=port)

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.pass_context
def list_functions(ctx):
    """List available color functions."""
    click.echo("Available functions:")
    for name, description in ColorFunctionRegistry().describe().items():
        click.echo(f"  {name}")
        if ctx.obj.get('verbose'):
            click.echo(f"    {description}")


if __name__ == '__main__':
    main()
