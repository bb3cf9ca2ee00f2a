"""Items example.

A small Flask application storing items in memory, used to show how
testreq builds requests against a WSGI app without starting a server.

# Install dependencies

pip install testreq flask

# Launch the example

flask --app items_app run

curl -X POST -H "Content-Type: application/json" -d '{"name":"a"}' \
    http://localhost:5000/items
"""

import itertools

from flask import Flask, abort, jsonify, request

from testreq import context_from_environ

app = Flask(__name__)

API_TOKEN = "secret"

_items = {}
_ids = itertools.count(1)


def require_token():
    if request.headers.get("Authorization") != f"Bearer {API_TOKEN}":
        abort(401)


@app.post("/items")
def create_item():
    require_token()
    payload = request.get_json()
    if not isinstance(payload, dict) or not payload.get("name"):
        abort(400)
    item = {"id": next(_ids), "name": payload["name"]}
    _items[item["id"]] = item
    return jsonify(item), 201


@app.get("/items/<int:item_id>")
def get_item(item_id):
    # Requests dispatched with a canceled context are refused, the way a
    # real handler would give up on work nobody waits for anymore.
    if context_from_environ(request.environ).done():
        abort(503)
    if item_id not in _items:
        abort(404)
    return jsonify(_items[item_id])


@app.delete("/items/<int:item_id>")
def delete_item(item_id):
    require_token()
    _items.pop(item_id, None)
    return "", 204
