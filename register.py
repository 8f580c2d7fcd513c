from flask import Blueprint, current_app, jsonify, request, send_file
import qrcode, io

from api import get_store, notify_queue_changed, parse_body, wait_estimate
from models import GroupCreate, GroupStatus

# Création du blueprint pour les endpoints d'inscription
register_bp = Blueprint('register', __name__)


def _split_members(raw):
    """Accepte une liste de noms ou un texte avec un nom par ligne."""
    if isinstance(raw, str):
        return [name.strip() for name in raw.splitlines() if name.strip()]
    return raw


@register_bp.route('/qr')
def generate_qr():
    """
    Génère un QR code pointant vers l'endpoint /register.
    L'URL publique vient de la configuration (PUBLIC_BASE_URL).
    """
    url = current_app.config['QUEUE_CONFIG'].registration_url
    img = qrcode.make(url)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return send_file(buf, mimetype='image/png')


@register_bp.route('/register', methods=['GET'])
def registration_preview():
    """
    Attente qu'aurait un groupe s'inscrivant maintenant.
    """
    body = wait_estimate().to_dict()
    body['groupsInQueue'] = len(get_store().get_queued_groups())
    return jsonify(body)


@register_bp.route('/register', methods=['POST'])
def register():
    """
    Inscription d'un groupe sur place (JSON ou formulaire).
    Le groupe est ajouté en fin de file et son attente estimée est renvoyée.
    """
    if request.is_json:
        payload = request.get_json(silent=True)
        payload = dict(payload) if isinstance(payload, dict) else {}
    else:
        payload = request.form.to_dict()
    if 'members' in payload:
        payload['members'] = _split_members(payload['members'])
    # Une inscription entre toujours en file d'attente
    payload['status'] = GroupStatus.WAITING.value
    payload.setdefault('present', True)

    data = parse_body(GroupCreate, "Invalid group data", payload=payload)
    group = get_store().create_group(data.model_dump())
    notify_queue_changed()

    body = wait_estimate(group.id).to_dict()
    body['group'] = group.to_dict()
    return jsonify(body), 201
