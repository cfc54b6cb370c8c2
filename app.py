#!/usr/bin/env python3
"""
Runabhii AI Photo Editor - Web Application
Flask server with WebSocket support for generation progress updates
"""

import os
from io import BytesIO

from flask import Flask, request, jsonify, render_template, send_file, session
from flask_socketio import SocketIO, emit
from flask_cors import CORS
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.utils import secure_filename
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from services.logging_setup import setup_logger
from services import editor
from services.errors import GenerationInProgressError, ShareUnsupportedError, ValidationError
from services.image_ingestion import ACCEPTED_MIME_TYPES
from services.preview_store import PreviewStore
from services.session_manager import SessionManager
from models.schemas import BackgroundPreset, PoseAction

logger = setup_logger()

DOWNLOAD_FILENAME = 'runabhii-creation.png'

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = 20 * 1024 * 1024  # 20MB max per upload
app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'photo-editor-secret-key-change-in-production')

# Enable CORS
CORS(app)

# Initialize SocketIO
socketio = SocketIO(app, cors_allowed_origins="*", async_mode='threading')

preview_store = PreviewStore(url_prefix='/previews/')
session_manager = SessionManager(preview_store, session_timeout_minutes=60)


def current_state():
    """Get the SelectionState for the requesting browser, creating it if needed"""
    state, is_new = session_manager.get_or_create_session(session.get('session_id'))
    if is_new:
        session['session_id'] = state.session_id
    return state


def state_response(state, status=200, notice=None):
    payload = state.to_dict()
    if notice:
        payload['notice'] = notice
    return jsonify(payload), status


def emit_progress(sid, progress):
    """Emit progress update via WebSocket"""
    if sid:
        socketio.emit('progress', progress.to_dict(), room=sid)


def parse_slot(slot):
    if slot not in (1, 2):
        raise ValidationError(f"Invalid photo slot: {slot}")
    return slot


@app.errorhandler(ValidationError)
def handle_validation_error(e):
    return jsonify({'error': str(e)}), 400


@app.errorhandler(GenerationInProgressError)
def handle_busy(e):
    return jsonify({'error': str(e)}), 409


@app.errorhandler(RequestEntityTooLarge)
def handle_too_large(e):
    return jsonify({'error': 'Image file is too large'}), 413


@app.route('/')
def index():
    """Serve the main page"""
    return render_template(
        'index.html',
        backgrounds=list(BackgroundPreset),
        actions=list(PoseAction),
        accepted_types=', '.join(ACCEPTED_MIME_TYPES),
        share_unsupported_message=str(ShareUnsupportedError()),
        download_filename=DOWNLOAD_FILENAME,
    )


@app.route('/api/state', methods=['GET'])
def get_state():
    """Current selections, result and error for this browser"""
    return state_response(current_state())


@app.route('/api/images/<int:slot>', methods=['POST'])
def upload_image(slot):
    """
    Upload a photo into slot 1 or 2

    Accepts:
        - image: Image file (PNG, JPEG or WEBP)

    Returns:
        JSON state; 400 with a notice if the upload was rejected
    """
    slot = parse_slot(slot)
    state = current_state()

    image_file = request.files.get('image')
    if not image_file or not image_file.filename:
        return state_response(state, 400, notice='No image provided')

    filename = secure_filename(image_file.filename) or f"photo_{slot}"
    previous_preview = state.slot(slot).preview_url

    try:
        editor.upload_image(
            state,
            slot,
            image_file.stream,
            filename,
            image_file.mimetype,
            preview_store,
        )
    except ValidationError as e:
        return state_response(state, 400, notice=str(e))

    # Ingestion failed: slot kept its previous preview
    if state.slot(slot).preview_url == previous_preview:
        return state_response(state, 400)
    return state_response(state)


@app.route('/api/images/<int:slot>', methods=['DELETE'])
def delete_image(slot):
    """Remove the photo in a slot"""
    slot = parse_slot(slot)
    state = editor.delete_image(current_state(), slot, preview_store)
    return state_response(state)


@app.route('/previews/<token>')
def serve_preview(token):
    """Serve an uploaded photo preview"""
    item = preview_store.get(token)
    if item is None:
        return jsonify({'error': 'Preview not found'}), 404

    data, mime_type = item
    return send_file(BytesIO(data), mimetype=mime_type)


@app.route('/api/options', methods=['PUT'])
def update_options():
    """
    Update background and outfit selections

    Accepts JSON:
        - background: Preset key (white, garden, park, home)
        - suggest_outfit_change: Boolean
    """
    data = request.get_json(silent=True) or {}
    state = current_state()

    if 'background' in data:
        editor.set_background(state, data['background'])
    if 'suggest_outfit_change' in data:
        editor.set_outfit_change(state, data['suggest_outfit_change'])

    return state_response(state)


@app.route('/api/generate/<action>', methods=['POST'])
def generate(action):
    """
    Generate the combined image

    Returns:
        JSON state with result_image on success; 400 when uploads are
        missing, 409 while another generation runs, 502 on generation failure
    """
    action = PoseAction.from_key(action)
    state = current_state()

    # Get Socket.IO session ID from headers
    socket_sid = request.headers.get('X-Socket-ID')

    editor.generate(
        state,
        action,
        progress_callback=lambda progress: emit_progress(socket_sid, progress),
    )

    if state.error == editor.MISSING_UPLOADS_MESSAGE:
        return state_response(state, 400)
    if state.error:
        return state_response(state, 502)
    return state_response(state)


@app.route('/api/result/download')
def download_result():
    """Download the generated image"""
    image_bytes, mime_type = editor.result_bytes(current_state())
    return send_file(
        BytesIO(image_bytes),
        mimetype=mime_type,
        as_attachment=True,
        download_name=DOWNLOAD_FILENAME,
    )


@app.route('/api/reset', methods=['POST'])
def reset():
    """Start over with empty slots"""
    state = editor.reset(current_state(), preview_store)
    return state_response(state)


@app.route('/health')
def health():
    """Health check endpoint"""
    session_manager.cleanup_expired_sessions()
    return jsonify({
        'status': 'healthy',
        'active_sessions': session_manager.get_session_count()
    })


# WebSocket event handlers
@socketio.on('connect')
def handle_connect():
    """Handle client connection"""
    logger.info("Client connected", sid=request.sid)
    emit('connected', {'sid': request.sid})


@socketio.on('disconnect')
def handle_disconnect(*args):
    """Handle client disconnection"""
    logger.info("Client disconnected", sid=request.sid)


if __name__ == '__main__':
    if not (os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")):
        logger.error("Missing required environment variable GOOGLE_API_KEY; set it in your .env file")
        raise SystemExit(1)

    port = int(os.getenv('PORT', 5001))
    logger.info("Starting photo editor", url=f"http://localhost:{port}")

    socketio.run(app, debug=os.getenv('FLASK_DEBUG') == '1', host='0.0.0.0', port=port,
                 allow_unsafe_werkzeug=True)
