"""
API REST de la file d'attente (préfixe /api).
Chaque mutation réussie publie un événement 'update_queue' pour que les
écrans rechargent leurs données.
"""
import logging
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from estimator import calculate_wait_time, overdue_groups
from models import CallNextRequest, GroupCreate, GroupStatus, GroupUpdate, SettingUpdate, StaffCreate
from storage import DuplicateStaffError

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')


class ApiError(Exception):
    """Erreur renvoyée au client sous forme JSON {message, errors?}."""

    def __init__(self, status, message, errors=None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.errors = errors

    def to_response(self):
        body = {'message': self.message}
        if self.errors is not None:
            body['errors'] = self.errors
        return jsonify(body), self.status


def get_store():
    return current_app.extensions['queue_store']


def parse_body(schema, message, payload=None):
    """Valide le corps de la requête ; lève une ApiError 400 détaillée."""
    if payload is None:
        payload = request.get_json(silent=True)
    try:
        return schema.model_validate(payload if payload is not None else {})
    except ValidationError as exc:
        errors = [
            {'field': '.'.join(str(part) for part in err['loc']), 'message': err['msg']}
            for err in exc.errors()
        ]
        logger.warning("%s : %s", message, errors)
        raise ApiError(400, message, errors) from None


def notify_queue_changed():
    """Indique aux clients connectés que la file a changé."""
    store = get_store()
    socketio = current_app.extensions['socketio']
    socketio.emit('update_queue', {
        'queue': [g.id for g in store.get_queued_groups()],
        'stats': store.stats(),
    })


def wait_estimate(group_id=None):
    store = get_store()
    settings = store.queue_settings()
    return calculate_wait_time(
        store.get_groups(),
        settings.concurrent_groups,
        settings.activity_duration,
        target_group_id=group_id,
    )


def stamp_transition(changes):
    """Horodate le début ou la fin d'activité si le client ne l'a pas fait."""
    status = changes.get('status')
    if status == GroupStatus.IN_PROGRESS and not changes.get('start_time'):
        changes['start_time'] = datetime.now()
    if status == GroupStatus.COMPLETED and not changes.get('end_time'):
        changes['end_time'] = datetime.now()
    return changes


# --- Groupes ---

@api_bp.route('/groups', methods=['GET'])
def list_groups():
    return jsonify([g.to_dict() for g in get_store().get_groups()])


@api_bp.route('/groups', methods=['POST'])
def create_group():
    data = parse_body(GroupCreate, "Invalid group data")
    group = get_store().create_group(stamp_transition(data.model_dump()))
    notify_queue_changed()
    return jsonify(group.to_dict()), 201


@api_bp.route('/groups/<int:group_id>', methods=['GET'])
def get_group(group_id):
    group = get_store().get_group(group_id)
    if group is None:
        raise ApiError(404, "Group not found")
    return jsonify(group.to_dict())


@api_bp.route('/groups/<int:group_id>', methods=['PATCH'])
def update_group(group_id):
    data = parse_body(GroupUpdate, "Invalid group data")
    store = get_store()
    group = store.get_group(group_id)
    if group is None:
        raise ApiError(404, "Group not found")
    changes = data.changes()
    # Le statut ne fait qu'avancer : waiting -> in-progress -> completed
    if 'status' in changes and changes['status'].rank < group.status.rank:
        raise ApiError(409, "Invalid status transition")
    if 'status' in changes and changes['status'] != group.status:
        stamp_transition(changes)
    group = store.update_group(group_id, changes)
    if 'status' in changes:
        logger.info("Groupe #%s : statut %s", group.id, group.status.value)
    notify_queue_changed()
    return jsonify(group.to_dict())


@api_bp.route('/groups/<int:group_id>', methods=['DELETE'])
def delete_group(group_id):
    if not get_store().delete_group(group_id):
        raise ApiError(404, "Group not found")
    logger.info("Groupe #%s supprimé", group_id)
    notify_queue_changed()
    return '', 204


# --- Paramètres ---

@api_bp.route('/settings', methods=['GET'])
def list_settings():
    return jsonify([s.to_dict() for s in get_store().get_settings()])


@api_bp.route('/settings/<key>', methods=['PUT'])
def update_setting(key):
    data = parse_body(SettingUpdate, "Invalid setting data")
    setting = get_store().set_setting(key, data.value)
    logger.info("Paramètre %s = %r", key, data.value)
    notify_queue_changed()
    return jsonify(setting.to_dict())


# --- Personnel ---

@api_bp.route('/staff', methods=['GET'])
def list_staff():
    return jsonify([s.to_dict() for s in get_store().get_staff()])


@api_bp.route('/staff', methods=['POST'])
def create_staff():
    data = parse_body(StaffCreate, "Invalid staff data")
    try:
        member = get_store().create_staff(data.name)
    except DuplicateStaffError:
        raise ApiError(409, "Staff member already exists") from None
    logger.info("Personnel ajouté : %s", member.name)
    return jsonify(member.to_dict()), 201


@api_bp.route('/staff/<int:staff_id>', methods=['DELETE'])
def delete_staff(staff_id):
    if not get_store().delete_staff(staff_id):
        raise ApiError(404, "Staff member not found")
    logger.info("Personnel #%s supprimé", staff_id)
    return '', 204


# --- File d'attente ---

@api_bp.route('/queue/stats', methods=['GET'])
def queue_stats():
    return jsonify(get_store().stats())


@api_bp.route('/queue/estimate', methods=['GET'])
def queue_estimate():
    """
    Attente estimée pour un groupe (?groupId=N) ou pour le prochain
    groupe qui s'inscrirait.
    """
    group_id = None
    if 'groupId' in request.args:
        group_id = request.args.get('groupId', type=int)
        if group_id is None:
            raise ApiError(400, "Invalid groupId")
    return jsonify(wait_estimate(group_id).to_dict())


@api_bp.route('/queue/next', methods=['POST'])
def call_next():
    """
    Appelé par un membre du personnel pour démarrer le prochain groupe
    en attente, si un créneau est libre et que ce n'est pas la pause.
    """
    staff = parse_body(CallNextRequest, "Invalid call data").staff
    store = get_store()
    settings = store.queue_settings()

    if settings.is_break_time:
        raise ApiError(409, "Break time in progress")
    if len(store.get_in_progress_groups()) >= settings.concurrent_groups:
        raise ApiError(409, "No activity slot available")
    queued = store.get_queued_groups()
    if not queued:
        raise ApiError(404, "No group waiting")

    changes = stamp_transition({'status': GroupStatus.IN_PROGRESS})
    if staff:
        changes['assigned_staff'] = staff
    group = store.update_group(queued[0].id, changes)
    logger.info("Appel du groupe #%s par %s", group.id, staff or "personne")
    notify_queue_changed()
    return jsonify(group.to_dict())


@api_bp.route('/queue/overdue', methods=['GET'])
def queue_overdue():
    store = get_store()
    settings = store.queue_settings()
    overdue = overdue_groups(store.get_groups(), settings.activity_duration)
    return jsonify([g.to_dict() for g in overdue])
