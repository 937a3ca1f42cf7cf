
import sys
import importlib
import tempfile
import os


# Fail loudly and helpfully if required Python packages are missing.
def _require_modules(mods):
    missing = []
    for m in mods:
        try:
            importlib.import_module(m)
        except ImportError:
            missing.append(m)
    if missing:
        print("\nERROR: Missing required Python package(s): {}".format(', '.join(missing)))
        print("Install them with:")
        print("  python -m pip install -e .[bridge]")
        sys.exit(1)


_require_modules(['flask', 'soundfile', 'numpy', 'KFCE'])

from flask import Flask, request, jsonify

from KFCE.SHM.records import RecordError, serialize, deserialize, describe
from KFCE.SVM.capture_io import load_capture, format_sub_raw, DEFAULT_THRESHOLD
from KFCE.SVM.receiver import Receiver
from KFCE.registry import PROTOCOLS, encoder_for

app = Flask(__name__)


def _message_json(message):
    return {
        'protocol': message.protocol,
        'bits': message.bit_count,
        'key': '{:X}'.format(message.key),
        'serial': message.serial,
        'button': message.button,
        'count': message.count,
        'text': describe(message),
        'record': serialize(message),
    }


@app.route('/py-bridge/decode', methods=['POST'])
def decode():
    if 'capture' not in request.files:
        return jsonify({'error': 'missing file field `capture`'}), 400
    f = request.files['capture']
    protocols = request.form.getlist('protocol') or None
    if protocols:
        unknown = [p for p in protocols if p not in PROTOCOLS]
        if unknown:
            return jsonify({'error': 'unknown protocol(s): {}'.format(', '.join(unknown))}), 400
    try:
        threshold = float(request.form.get('threshold', DEFAULT_THRESHOLD))
    except ValueError:
        return jsonify({'error': 'threshold must be a number'}), 400

    # Keep the upload's extension: load_capture picks the reader from it.
    ext = os.path.splitext(f.filename or '')[1].lower() or '.sub'
    with tempfile.TemporaryDirectory() as td:
        in_path = os.path.join(td, 'capture' + ext)
        f.save(in_path)
        try:
            pulses = load_capture(in_path, threshold)
        except (OSError, ValueError) as e:
            return jsonify({'error': str(e)}), 400

    rx = Receiver(protocols)
    messages = rx.feed_pulses(pulses)
    return jsonify({
        'pulses': len(pulses),
        'messages': [_message_json(m) for m in messages],
    })


@app.route('/py-bridge/encode', methods=['POST'])
def encode():
    text = request.form.get('record') or request.get_data(as_text=True)
    if not text:
        return jsonify({'error': 'missing record text'}), 400
    try:
        message, preset = deserialize(text)
        pulses = encoder_for(message).pulses()
    except (RecordError, ValueError) as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({
        'protocol': message.protocol,
        'pulses': [[int(p.level), p.duration_us] for p in pulses],
        'raw': format_sub_raw(pulses, preset),
    })


@app.route('/py-bridge/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok', 'protocols': list(PROTOCOLS)})


if __name__ == '__main__':
    # Run on localhost:5000 by default
    app.run(host='127.0.0.1', port=5000)
