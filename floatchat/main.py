import logging
from typing import Optional

from flask import Flask, request, jsonify

from floatchat.chatbot import Dispatcher, Message, Mode
from floatchat.config import Settings, configure_logging, load_config, validate_settings

logger = logging.getLogger(__name__)


# Load settings from YAML file (environment variables override it)
def load_settings(filepath: Optional[str] = None) -> Settings:
    return load_config(filepath)


# Initialize chatbot components
def initialize_components(settings: Settings) -> Dispatcher:
    result = validate_settings(settings)
    for warning in result.warnings:
        logger.warning(f"{warning.field_path}: {warning.message}")
    for error in result.errors:
        logger.error(f"{error.field_path}: {error.message}")

    return Dispatcher.from_settings(settings)


def create_app(settings: Optional[Settings] = None, dispatcher: Optional[Dispatcher] = None) -> Flask:
    settings = settings or load_settings()
    dispatcher = dispatcher or initialize_components(settings)

    app = Flask(__name__)
    app.config['SETTINGS'] = settings
    app.config['DISPATCHER'] = dispatcher

    # Route for handling incoming messages
    @app.route('/chat', methods=['POST'])
    async def chat():
        data = request.get_json(silent=True) or {}
        message = data.get('message')

        if not isinstance(message, str):
            return jsonify({'error': 'No message provided'}), 400

        try:
            mode = Mode.parse(data.get('mode'))
        except ValueError:
            return jsonify({'error': f"Unknown mode: {data.get('mode')}"}), 400

        raw_history = data.get('history') or []
        if not isinstance(raw_history, list):
            return jsonify({'error': 'History must be a list'}), 400
        try:
            history = [Message.from_dict(item) for item in raw_history]
        except (AttributeError, TypeError, ValueError):
            return jsonify({'error': 'Malformed history entry'}), 400

        try:
            response = await dispatcher.respond(message, mode, history)
        finally:
            # The view's event loop ends with the request
            await dispatcher.close()
        return jsonify(response.to_dict())

    @app.route('/welcome', methods=['GET'])
    def welcome():
        try:
            mode = Mode.parse(request.args.get('mode'))
        except ValueError:
            return jsonify({'error': f"Unknown mode: {request.args.get('mode')}"}), 400

        return jsonify(dispatcher.welcome(mode).to_dict())

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({
            'status': 'ok',
            'app_name': settings.app_name,
            'version': settings.version,
            'upstream_configured': dispatcher.has_upstream,
        })

    return app


def main():
    # Load settings
    settings = load_settings()
    configure_logging(settings.observability)

    # Start the Flask app
    app = create_app(settings)
    app.run(debug=settings.debug_mode, port=5000)


if __name__ == '__main__':
    main()
