"""HTML pages served by the bridge.

The landing page shows the ``#error=`` fragment set by a failed callback.
The dashboard drives the ``/api`` endpoints from the browser.
"""

from __future__ import annotations

import html


_STYLE = """<style>
  body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
         margin: 0; background: #f0f2f5; color: #1a1a2e; }
  .card { max-width: 40rem; margin: 4rem auto; padding: 2rem 3rem; background: white;
          border-radius: 12px; box-shadow: 0 2px 12px rgba(0,0,0,.08); }
  h1 { font-size: 1.5rem; margin-bottom: 0.5rem; }
  p { color: #666; }
  .error { color: #cc0000; }
  button, .button { background: #1db954; color: white; border: 0; border-radius: 20px;
                    padding: 0.5rem 1.25rem; font-size: 1rem; cursor: pointer;
                    text-decoration: none; display: inline-block; margin: 0.25rem; }
  input, select { padding: 0.4rem; font-size: 1rem; margin: 0.25rem; }
  pre { background: #f6f8fa; padding: 1rem; overflow: auto; max-height: 20rem; }
</style>"""

_INDEX_HTML = """<!DOCTYPE html>
<html>
<head><title>{title}</title>
{style}</head>
<body><div class="card">
  <h1>{title}</h1>
  <p>Sign in with Spotify to control playback from this page.</p>
  <p id="error" class="error" hidden></p>
  <a class="button" href="/login">Log in with Spotify</a>
</div>
<script>
  const params = new URLSearchParams(window.location.hash.slice(1));
  const error = params.get("error");
  if (error) {{
    const el = document.getElementById("error");
    el.textContent = "Login failed: " + error;
    el.hidden = false;
  }}
</script>
</body></html>"""

_DASHBOARD_HTML = """<!DOCTYPE html>
<html>
<head><title>{title} Dashboard</title>
{style}</head>
<body><div class="card">
  <h1>{title} Dashboard</h1>
  <div>
    <button onclick="loadDevices()">Devices</button>
    <select id="device"></select>
  </div>
  <div>
    <button onclick="play()">Play</button>
    <button onclick="call('PUT', '/api/pause')">Pause</button>
    <button onclick="call('POST', '/api/previous')">Previous</button>
    <button onclick="call('POST', '/api/next')">Next</button>
  </div>
  <div>
    <input id="query" placeholder="Search">
    <select id="type">
      <option>track</option><option>album</option>
      <option>artist</option><option>playlist</option>
    </select>
    <button onclick="search()">Search</button>
  </div>
  <form method="post" action="/logout"><button type="submit">Log out</button></form>
  <pre id="output"></pre>
</div>
<script>
  const output = document.getElementById("output");
  async function call(method, url, body) {{
    const opts = {{ method, headers: {{}} }};
    if (body !== undefined) {{
      opts.headers["Content-Type"] = "application/json";
      opts.body = JSON.stringify(body);
    }}
    const resp = await fetch(url, opts);
    if (resp.status === 401) {{ window.location = "/"; return null; }}
    const data = resp.status === 204 ? {{ status: 204 }} : await resp.json();
    output.textContent = JSON.stringify(data, null, 2);
    return data;
  }}
  async function loadDevices() {{
    const data = await call("GET", "/api/devices");
    const select = document.getElementById("device");
    select.innerHTML = "";
    for (const d of (data && data.devices) || []) {{
      const opt = document.createElement("option");
      opt.value = d.id; opt.textContent = d.name;
      select.appendChild(opt);
    }}
  }}
  function play() {{
    const device = document.getElementById("device").value;
    return call("PUT", "/api/play", device ? {{ device_id: device }} : {{}});
  }}
  function search() {{
    const q = encodeURIComponent(document.getElementById("query").value);
    const t = encodeURIComponent(document.getElementById("type").value);
    return call("GET", "/api/search?q=" + q + "&type=" + t);
  }}
</script>
</body></html>"""


def render_index(title: str = "SpotBridge") -> str:
    """Render the landing page."""
    return _INDEX_HTML.format(title=html.escape(title), style=_STYLE)


def render_dashboard(title: str = "SpotBridge") -> str:
    """Render the playback dashboard."""
    return _DASHBOARD_HTML.format(title=html.escape(title), style=_STYLE)
