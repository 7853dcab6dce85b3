#!/usr/bin/env python3
"""
Image Upscaler API Server
Synchronous and job-based endpoints around the upscale pipeline.
"""

import os
import logging
import queue
import uuid
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from werkzeug.utils import secure_filename

# --- Centralized Logging Configuration ---
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)

from models.errors import InvalidInputError, UpscaleError
from models.image import Image
from models.upscale_settings import UpscaleSettings
from pipeline.upscale_pipeline import upscale
from pipeline.upscale_worker import UpscaleWorker
from services.image_service import ImageService

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend communication

# Configuration
RESULTS_FOLDER = os.getenv("RESULTS_FOLDER", "data/api_results")
ALLOWED_EXTENSIONS = set(os.getenv("ALLOWED_EXTENSIONS", "png,jpg,jpeg,gif,bmp,webp").split(","))
MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "100")) * 1024 * 1024
DEFAULT_SCALE = float(os.getenv("DEFAULT_SCALE", "2"))

app.config['RESULTS_FOLDER'] = RESULTS_FOLDER
app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

# Initialize services
image_service = ImageService()
settings = UpscaleSettings.from_env()
worker = UpscaleWorker(settings=settings)

logger = logging.getLogger(__name__)

# Job storage for asynchronous runs
jobs = {}


class JobState:
    """Latest known state of one asynchronous upscale job."""

    def __init__(self, job_id: str, messages: queue.Queue, source_name: str):
        self.job_id = job_id
        self.messages = messages
        self.source_name = source_name
        self.status = "running"
        self.progress = 0.0
        self.label: Optional[str] = None
        self.error: Optional[str] = None
        self.result: Optional[Dict[str, Any]] = None

    def poll(self):
        """Fold every pending worker message into this state."""
        while True:
            try:
                message = self.messages.get_nowait()
            except queue.Empty:
                return
            if message.type == "progress":
                self.progress = message.payload["value"]
                self.label = message.payload.get("label") or self.label
            elif message.type == "complete":
                self.status = "complete"
                self.result = message.payload
            elif message.type == "error":
                self.status = "error"
                self.error = message.payload["message"]

    def as_dict(self) -> Dict[str, Any]:
        return {
            'job_id': self.job_id,
            'status': self.status,
            'progress': self.progress,
            'label': self.label,
            'error': self.error,
        }


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def read_upload() -> Image:
    """Decode the uploaded ``image`` file into an RGBA Image."""
    if 'image' not in request.files:
        raise InvalidInputError('No image provided')
    file = request.files['image']
    if file.filename == '':
        raise InvalidInputError('No file selected')
    if not allowed_file(file.filename):
        raise InvalidInputError(f'File type not allowed: {file.filename}')
    try:
        return image_service.decode(file.read(), secure_filename(file.filename))
    except ValueError as err:
        raise InvalidInputError(str(err)) from err


def read_scale() -> float:
    raw = request.form.get('scale', DEFAULT_SCALE)
    try:
        return float(raw)
    except (TypeError, ValueError) as err:
        raise InvalidInputError(f'Invalid scale: {raw!r}') from err


def save_result_for_serving(pixels, width: int, height: int, source_name: str) -> Dict[str, Any]:
    """Save an upscaled buffer to the results folder and describe it for JSON."""
    filename = f"upscaled_{uuid.uuid4().hex}_{Path(source_name).stem}.png"
    image = image_service.create_image(pixels, width, height, Path(RESULTS_FOLDER) / filename)
    image_service.save(image)
    return {
        'width': width,
        'height': height,
        'image_url': f"/api/image/{filename}",
        'filename': filename,
        'data_url': image_service.to_data_url(image),
    }


@app.route('/api/upscale', methods=['POST'])
def upscale_image():
    """Upscale an uploaded image and return the result in one response."""
    try:
        source = read_upload()
        scale = read_scale()
        logger.info(f"Upscaling {source.path} ({source.width}x{source.height}) ×{scale}")

        result = upscale(image_service.to_request(source, scale), settings=settings)
        payload = save_result_for_serving(result.buffer, result.width, result.height, str(source.path))
        payload.update({'success': True, 'duration_ms': round(result.duration_ms, 1)})
        return jsonify(payload)

    except InvalidInputError as e:
        logger.warning(f"Rejected upscale request: {e}")
        return jsonify({'success': False, 'message': str(e)}), 400
    except UpscaleError as e:
        logger.error(f"Upscale error: {e}")
        return jsonify({'success': False, 'message': f'Error upscaling image: {e}'}), 500


@app.route('/api/jobs', methods=['POST'])
def submit_job():
    """Start an asynchronous upscale job and return its id."""
    try:
        source = read_upload()
        scale = read_scale()
    except InvalidInputError as e:
        return jsonify({'success': False, 'message': str(e)}), 400

    messages = queue.Queue()
    job_id = worker.submit(image_service.to_request(source, scale), messages=messages)
    jobs[job_id] = JobState(job_id, messages, str(source.path))
    return jsonify({'success': True, 'job_id': job_id}), 202


@app.route('/api/jobs/<job_id>', methods=['GET'])
def job_status(job_id):
    """Report progress, and the result once the job has completed."""
    state = jobs.get(job_id)
    if state is None:
        return jsonify({'success': False, 'message': 'Job not found'}), 404

    state.poll()
    body = state.as_dict()
    body['success'] = state.status != "error"
    if state.status == "complete":
        if 'image_url' not in state.result:
            saved = save_result_for_serving(state.result['buffer'], state.result['width'],
                                            state.result['height'], state.source_name)
            del state.result['buffer']
            state.result.update(saved)
        body['result'] = {k: v for k, v in state.result.items() if k != 'buffer'}
    return jsonify(body)


@app.route('/api/jobs/<job_id>', methods=['DELETE'])
def clear_job(job_id):
    """Forget a job and free its memory."""
    if jobs.pop(job_id, None) is None:
        return jsonify({'success': False, 'message': 'Job not found'}), 404
    return jsonify({'success': True, 'message': 'Job cleared'})


@app.route('/api/image/<filename>')
def serve_image(filename):
    """Serve upscaled images."""
    image_path = Path(RESULTS_FOLDER) / secure_filename(filename)
    if image_path.exists():
        return send_file(image_path.resolve(), mimetype='image/png')
    return jsonify({'error': 'Image not found'}), 404


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'message': 'Image Upscaler API is running',
        'active_jobs': sum(1 for state in jobs.values() if state.status == "running"),
    })


@app.errorhandler(413)
def too_large(e):
    """Handle file too large error."""
    return jsonify({'error': f'File too large. Maximum size is {MAX_CONTENT_LENGTH // (1024*1024)}MB.'}), 413


@app.errorhandler(400)
def bad_request(e):
    """Handle bad request error."""
    return jsonify({'error': 'Bad request'}), 400


@app.errorhandler(500)
def internal_error(e):
    """Handle internal server error."""
    logger.error(f"Internal server error: {e}")
    return jsonify({'error': 'Internal server error'}), 500


def main():
    Path(RESULTS_FOLDER).mkdir(parents=True, exist_ok=True)
    print("🚀 Starting Image Upscaler API Server...")
    print(f"📁 Results directory: {RESULTS_FOLDER}")
    print(f"🔧 Max upload size: {MAX_CONTENT_LENGTH // (1024*1024)}MB")
    print("🌐 CORS enabled for frontend communication")
    print("📋 Endpoints:")
    print("   POST /api/upscale")
    print("   POST /api/jobs, GET /api/jobs/<job_id>")
    print("="*60)
    app.run(host=os.getenv("API_HOST", "0.0.0.0"), port=int(os.getenv("API_PORT", "5000")))


if __name__ == '__main__':
    main()
