from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse

APP_TITLE = "Test Server"
COOKIE_SESSION = "session"
COOKIE_SESSION_VALUE = "abc123"

app = FastAPI(title=APP_TITLE)


@app.get("/v1/items")
async def items(request: Request, limit: int = 10):
    """
    JSON list of items. Also sets the session cookie, like a login would.
    """
    resp = JSONResponse(
        {"items": [{"id": i, "name": f"item-{i}"} for i in range(limit)]},
        status_code=200,
    )
    resp.set_cookie(key=COOKIE_SESSION, value=COOKIE_SESSION_VALUE, path="/")
    return resp


@app.get("/v1/whoami")
async def whoami(request: Request):
    """
    • Session cookie present — 200 with the cookie value.
    • No cookie — 401, still a JSON body.
    """
    value = request.cookies.get(COOKIE_SESSION)
    if value is None:
        return JSONResponse({"ok": False, "error": "no session"}, status_code=401)
    return JSONResponse({"ok": True, "session": value}, status_code=200)


@app.get("/v1/logout")
async def logout():
    """Expires the session cookie."""
    resp = JSONResponse({"ok": True}, status_code=200)
    resp.delete_cookie(key=COOKIE_SESSION, path="/")
    return resp


@app.post("/v1/echo")
async def echo(request: Request):
    """
    Echoes what reached the app: method, query string, content type, raw body
    and headers (names lower-cased).
    """
    body = await request.body()
    return JSONResponse(
        {
            "method": request.method,
            "query": request.url.query,
            "content_type": request.headers.get("content-type"),
            "body": body.decode("utf-8", errors="replace"),
            "headers": {k.lower(): v for k, v in request.headers.items()},
        },
        status_code=200,
    )


@app.get("/v1/plain")
async def plain():
    """Not JSON: decoding it into a model must fail."""
    return PlainTextResponse("definitely not json", status_code=200)


@app.get("/v1/broken")
async def broken():
    """500 with a JSON body; the client still decodes it."""
    return JSONResponse({"ok": False, "error": "boom"}, status_code=500)


@app.get("/v1/redirect-items")
async def redirect_items():
    """Simple 302 to /v1/items."""
    return RedirectResponse(url="/v1/items?limit=1", status_code=302)
