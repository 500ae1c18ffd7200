"""Business logic handlers for saved post records."""

from flask import jsonify

from voice2post.repositories import records_repo

from . import guards

RECORDS_PAGE_SIZE = 50


def _record_payload(doc):
    data = doc.to_dict() or {}
    return {
        'id': doc.id,
        'transcript': data.get('transcript', ''),
        'summary': data.get('summary', ''),
        'generated_post': data.get('generated_post', ''),
        'style': data.get('style', ''),
        'processing_time': data.get('processing_time', ''),
        'created_at': data.get('created_at', 0),
        'updated_at': data.get('updated_at', 0),
    }


def list_records(app_ctx, request):
    decoded_token, error_response = guards.authenticate(app_ctx, request)
    if error_response:
        return error_response
    uid = decoded_token['uid']

    try:
        docs = records_repo.list_by_uid_recent(app_ctx.db, uid, RECORDS_PAGE_SIZE, app_ctx.firestore)
    except Exception as e:
        app_ctx.logger.error(f"Error fetching records for user {uid}: {e}")
        return jsonify({'error': 'Could not load records'}), 500
    return jsonify({'records': [_record_payload(doc) for doc in docs]})


def delete_record(app_ctx, request, record_id):
    decoded_token, error_response = guards.authenticate(app_ctx, request)
    if error_response:
        return error_response
    uid = decoded_token['uid']

    try:
        deleted = records_repo.delete_owned_doc(app_ctx.db, uid, record_id)
    except Exception as e:
        app_ctx.logger.error(f"Error deleting record {record_id} for user {uid}: {e}")
        return jsonify({'error': 'Could not delete record'}), 500
    if not deleted:
        return jsonify({'error': 'Record not found'}), 404
    return jsonify({'ok': True})
