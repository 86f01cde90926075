"""
On-demand rendering over HTTP.

``GET /fractals?fractal=newton&zoom=2&width=512`` renders one image per
request and streams it back as PNG. Every request parses its own options;
only the read-only defaults are shared between requests.
"""

import io
import logging
from typing import Optional

from flask import Flask, Response, jsonify, request

from ..api import FractalRenderer, RenderConfig
from ..core.errors import EncodeFailure, InvalidConfiguration, RenderCancelled
from ..core.options import DEFAULT_OPTIONS, RenderingOptions, parse_options
from ..rendering.coloring import ColorFunctionRegistry

logger = logging.getLogger(__name__)


def create_app(defaults: RenderingOptions = DEFAULT_OPTIONS,
               config: Optional[RenderConfig] = None,
               registry: Optional[ColorFunctionRegistry] = None) -> Flask:
    """
    Create the Flask application.

    Args:
        defaults: Options used for parameters a request leaves out
        config: Renderer settings shared by all requests (one process
            per request if None)
        registry: Color functions served by name (built-ins if None)

    Returns:
        Configured Flask app
    """
    app = Flask(__name__)
    renderer = FractalRenderer(config or RenderConfig(workers=1), registry)

    @app.route('/')
    def index():
        return jsonify({
            'functions': renderer.registry.names(),
            'defaults': defaults.to_dict(),
            'endpoint': '/fractals',
        })

    @app.route('/fractals')
    def fractals():
        function = request.args.get('fractal', '')
        options = parse_options(request.args, defaults)

        buffer = io.BytesIO()
        try:
            renderer.render(buffer, function, options)
        except InvalidConfiguration as e:
            logger.warning(f"Rejected render request: {e}")
            return Response(f"Invalid configuration: {e}\n", status=400, mimetype='text/plain')
        except RenderCancelled as e:
            logger.warning(f"Render request timed out: {e}")
            return Response(f"{e}\n", status=503, mimetype='text/plain')
        except EncodeFailure as e:
            logger.error(f"Could not encode render: {e}")
            return Response("Could not encode image\n", status=500, mimetype='text/plain')

        return Response(buffer.getvalue(), mimetype='image/png')

    return app
