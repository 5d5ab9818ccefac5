# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "remux @ file:///${PROJECT_ROOT}/..",
#     "granian[uvloop]>=2.6.0,<3.0.0",
# ]
# ///
"""RSGI server demo.

Fully functional web server using Granian + remux Router.
"""

import asyncio
import json
import logging
import sqlite3
from dataclasses import dataclass
from json.decoder import JSONDecodeError

from granian.server.embed import Server

from remux import (
    TERMINATED,
    Continue,
    Middlewares,
    Outcome,
    Route,
    Router,
    method_override,
)
from remux.rsgi import HTTPProtocol, HTTPScope, RSGIHTTPHandler

ADDRESS = "127.0.0.1"
PORT = 8000
TOKEN = "Bearer letmein"

logger = logging.getLogger("server")

_db = sqlite3.connect(":memory:")
_db.cursor().executescript("""
CREATE TABLE IF NOT EXISTS user (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL
);
""")


@dataclass
class Request:
    """Per-request state handed to middleware and the handler."""

    db: sqlite3.Connection
    user_id: int | None = None


async def main() -> None:
    logging.basicConfig(level=logging.DEBUG)

    router = Router(routes(_db), preprocessors=[method_override()])

    server = Server(router, address=ADDRESS, port=PORT, log_access=True)
    try:
        await server.serve()
    except asyncio.CancelledError:
        pass


# middleware
async def log_request(state: Request, s: HTTPScope, p: HTTPProtocol) -> Outcome:
    logger.info("%s %s user=%s", s.method, s.path, state.user_id)
    return Continue(s, p)


async def require_token(state: Request, s: HTTPScope, p: HTTPProtocol) -> Outcome:
    if s.headers.get("authorization") != TOKEN:
        p.response_str(401, [("Content-Type", "text/plain")], "Unauthorized")
        return TERMINATED
    return Continue(s, p)


def routes(db: sqlite3.Connection) -> list[Route[Request]]:
    public = Middlewares[Request](log_request)
    private = public.use(require_token)
    return [
        public.get(r"/", home(db)),
        public.get(r"/user/", get_users(db)),
        public.get(r"/user/([0-9]+)", get_user(db)),
        private.post(r"/user/", create_user(db)),
        private.delete(r"/user/([0-9]+)", delete_user(db)),
    ]


# handler factories close over the shared connection and build fresh state
def home(db: sqlite3.Connection):
    def factory(_captures: tuple[str, ...]) -> tuple[Request, RSGIHTTPHandler]:
        async def handler(s: HTTPScope, p: HTTPProtocol) -> None:
            p.response_str(200, [("Content-Type", "text/plain")], "Welcome home")

        return Request(db), handler

    return factory


def get_users(db: sqlite3.Connection):
    def factory(_captures: tuple[str, ...]) -> tuple[Request, RSGIHTTPHandler]:
        async def handler(s: HTTPScope, p: HTTPProtocol) -> None:
            cur = db.cursor()
            cur.execute("SELECT * FROM user")
            result = cur.fetchall()
            serialized = json.dumps([{"id": row[0], "name": row[1]} for row in result])
            p.response_str(200, [("Content-Type", "application/json")], serialized)

        return Request(db), handler

    return factory


def get_user(db: sqlite3.Connection):
    def factory(captures: tuple[str, ...]) -> tuple[Request, RSGIHTTPHandler]:
        state = Request(db, user_id=int(captures[0]))

        async def handler(s: HTTPScope, p: HTTPProtocol) -> None:
            cur = db.cursor()
            cur.execute("SELECT * FROM user WHERE id = ?", (state.user_id,))
            result = cur.fetchone()
            if result is None:
                p.response_str(404, [("Content-Type", "text/plain")], "Not found")
                return
            serialized = json.dumps({"id": result[0], "name": result[1]})
            p.response_str(200, [("Content-Type", "application/json")], serialized)

        return state, handler

    return factory


def create_user(db: sqlite3.Connection):
    def factory(_captures: tuple[str, ...]) -> tuple[Request, RSGIHTTPHandler]:
        async def handler(s: HTTPScope, p: HTTPProtocol) -> None:
            body = await p()
            try:
                payload = json.loads(body)
            except JSONDecodeError:
                p.response_str(422, [("Content-Type", "text/plain")], "Invalid json")
                return
            try:
                name = payload["name"]
            except KeyError:
                p.response_str(422, [("Content-Type", "text/plain")], "Missing name")
                return
            cur = db.cursor()
            cur.execute("INSERT INTO user (name) VALUES (?) RETURNING *", (name,))
            result = cur.fetchone()
            serialized = json.dumps({"id": result[0], "name": result[1]})
            p.response_str(201, [("Content-Type", "application/json")], serialized)

        return Request(db), handler

    return factory


def delete_user(db: sqlite3.Connection):
    def factory(captures: tuple[str, ...]) -> tuple[Request, RSGIHTTPHandler]:
        state = Request(db, user_id=int(captures[0]))

        async def handler(s: HTTPScope, p: HTTPProtocol) -> None:
            cur = db.cursor()
            cur.execute("DELETE FROM user WHERE id = ? RETURNING id", (state.user_id,))
            if cur.fetchone() is None:
                p.response_str(404, [("Content-Type", "text/plain")], "Not found")
                return
            p.response_empty(204, [])

        return state, handler

    return factory


if __name__ == "__main__":
    asyncio.run(main())
