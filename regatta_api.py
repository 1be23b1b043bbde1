"""
Regatta Results Upload API

Flask endpoint that takes a manage2sail results PDF plus a sail number and
returns the extracted regatta data as JSON.
"""

import os
import logging
import tempfile

from flask import Flask, jsonify, request
from flask_cors import CORS

from regatta_parser import extract_pdf_text, parse_regatta_text

logger = logging.getLogger(__name__)


def load_config() -> dict:
    """Settings from the environment"""
    return {
        'MAX_FILE_SIZE': int(os.environ.get('MAX_FILE_SIZE', 10 * 1024 * 1024)),  # 10MB
        'REPORT_DATE_FALLBACK': os.environ.get('REPORT_DATE_FALLBACK', '0').lower() in ('1', 'true', 'yes'),
        'LOG_LEVEL': os.environ.get('LOG_LEVEL', 'INFO').upper(),
        'HOST': os.environ.get('HOST', '127.0.0.1'),
        'PORT': int(os.environ.get('PORT', 5000)),
    }


def create_app(config=None) -> Flask:
    settings = load_config()
    if config:
        settings.update(config)

    app = Flask(__name__)
    app.config.update(settings)
    app.config['MAX_CONTENT_LENGTH'] = settings['MAX_FILE_SIZE']

    CORS(app, origins='*', send_wildcard=True,
         methods=['POST', 'OPTIONS'], allow_headers=['Content-Type'])

    @app.route('/api/parse-pdf', methods=['POST', 'OPTIONS'])
    def parse_pdf():
        # CORS preflight; headers are added by flask-cors
        if request.method == 'OPTIONS':
            return '', 200

        sail_number = request.form.get('sailNumber', '')
        pdf_file = request.files.get('pdf')

        if not pdf_file or not pdf_file.filename:
            return jsonify({'error': 'No PDF file uploaded'}), 400

        tmp = tempfile.NamedTemporaryFile(suffix='.pdf', delete=False)
        try:
            pdf_file.save(tmp)
            tmp.close()
            logger.info("Processing PDF: %s Size: %d", pdf_file.filename, os.path.getsize(tmp.name))
            logger.info("Looking for sail number: %s", sail_number)

            try:
                text = extract_pdf_text(tmp.name)
            except Exception as e:
                logger.exception("PDF parsing error")
                return jsonify({'error': 'Failed to parse PDF', 'details': str(e)}), 500

            logger.info("PDF text length: %d", len(text))
            logger.debug("First 500 chars: %s", text[:500])

            result = parse_regatta_text(text, sail_number, app.config['REPORT_DATE_FALLBACK'])
            logger.info(
                "Parse result: success=%s regatta=%r class=%r date=%r races=%d participants=%d "
                "participant_found=%s rows=%d",
                result.success, result.regatta_name, result.boat_class, result.date,
                result.race_count, result.total_participants,
                result.participant is not None, len(result.all_results))
            return jsonify(result.to_dict()), 200
        finally:
            tmp.close()
            if os.path.exists(tmp.name):
                os.unlink(tmp.name)

    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({'error': 'Bad request', 'details': e.description}), 400

    @app.errorhandler(500)
    def server_error(e):
        original = getattr(e, 'original_exception', None) or e
        return jsonify({'error': 'Failed to parse PDF', 'details': str(original)}), 500

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(413)
    def too_large(e):
        return jsonify({'error': 'File too large'}), 413

    return app


app = create_app()


def main():
    settings = load_config()
    logging.basicConfig(
        level=settings['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    app.run(host=settings['HOST'], port=settings['PORT'])


if __name__ == "__main__":
    main()
