"""
방송 오버레이용 로컬 HTTP 서버. /api/state JSON, / 룰렛 오버레이 HTML.
OBS 에서 브라우저 소스 URL 을 http://127.0.0.1:8765/?obs 로 설정 (?obs 면 조작 버튼 숨김).
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from bitwheel.overlay.engine import OverlayEngine

logger = logging.getLogger(__name__)


def create_app(
    engine: OverlayEngine,
    relay_url: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """엔진 상태를 보여주는 오버레이 앱. 테스트 버튼은 릴레이로 그대로 전달."""
    app = FastAPI(title="bitwheel overlay", docs_url=None, redoc_url=None)
    app.state.engine = engine
    app.state.relay_url = relay_url.rstrip("/")
    app.state.transport = transport
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST"],
    )

    async def _forward(request: Request, path: str, payload: Optional[dict]) -> JSONResponse:
        url = request.app.state.relay_url + path
        try:
            async with httpx.AsyncClient(transport=request.app.state.transport, timeout=5.0) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("릴레이 요청 실패 (%s): %s", path, e)
            raise HTTPException(status_code=502, detail="Relay request failed")
        return JSONResponse(response.json(), status_code=response.status_code)

    @app.get("/api/state")
    async def get_state(request: Request):
        """룰렛 각도/회전 정보, 타이머, 결과, 대기 큐, 후원자 표 반환."""
        return JSONResponse(request.app.state.engine.snapshot())

    @app.post("/api/test-spin")
    async def test_spin(request: Request, payload: Optional[dict] = Body(default=None)):
        """오버레이 화면의 테스트 버튼 → 릴레이 /api/test-spin"""
        return await _forward(request, "/api/test-spin", payload or {})

    @app.post("/api/start-round")
    async def start_round(request: Request):
        """오버레이 화면의 라운드 시작 버튼 → 릴레이 /api/start-round"""
        return await _forward(request, "/api/start-round", None)

    @app.get("/", response_class=HTMLResponse)
    def overlay_page():
        """OBS 브라우저 소스에 넣을 URL. 상태를 폴링해 룰렛을 그림."""
        return HTMLResponse(OVERLAY_HTML)

    return app


OVERLAY_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Bit Wheel Overlay</title>
  <style>
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body { font-family: Arial, sans-serif; background: #111; color: #fff; display: flex; gap: 24px; padding: 16px; }
    body.obs-mode { background: transparent; }
    body.obs-mode .controls { display: none !important; }
    .wheel-area { position: relative; width: 600px; }
    .pointer { position: absolute; left: 50%; top: 0; transform: translateX(-50%); width: 0; height: 0;
      border-left: 16px solid transparent; border-right: 16px solid transparent; border-top: 32px solid #ffd700; z-index: 2; }
    .timer { font-size: 40px; font-weight: bold; text-align: center; min-height: 48px; }
    .timer.danger { color: #ff4d4f; }
    .current-donor { font-size: 20px; text-align: center; min-height: 28px; }
    .spin-queue { font-size: 16px; text-align: center; color: #ccc; min-height: 22px; }
    .result-overlay { position: absolute; left: 50%; top: 45%; transform: translate(-50%, -50%); padding: 18px 28px;
      border-radius: 12px; font-size: 32px; font-weight: bold; text-align: center; z-index: 3; }
    .result-overlay.hidden { display: none; }
    .result-overlay.keep { background: rgba(155, 89, 182, 0.95); }
    .result-overlay.share { background: rgba(0, 123, 255, 0.95); }
    .result-overlay.win { background: rgba(40, 167, 69, 0.95); }
    .result-overlay.drop { background: rgba(220, 53, 69, 0.95); }
    table { border-collapse: collapse; min-width: 280px; }
    th, td { padding: 6px 10px; border-bottom: 1px solid #333; text-align: left; }
    .controls { margin-top: 16px; display: flex; gap: 8px; }
    .controls input, .controls button { padding: 6px 10px; border-radius: 6px; border: 1px solid #555; background: #222; color: #eee; }
  </style>
</head>
<body>
  <div class="wheel-area">
    <div class="timer" id="timer"></div>
    <div class="current-donor" id="currentDonor"></div>
    <div style="position: relative;">
      <div class="pointer"></div>
      <canvas id="wheelCanvas" width="600" height="600"></canvas>
      <div class="result-overlay hidden" id="resultOverlay"></div>
    </div>
    <div class="spin-queue" id="spinQueue"></div>
    <div class="controls">
      <input id="testDonor" placeholder="TestViewer">
      <input id="testBits" type="number" placeholder="100">
      <button type="button" id="btn-test">Test Spin</button>
      <button type="button" id="btn-round">Start Round</button>
    </div>
  </div>
  <div id="donorPanel">
    <table>
      <thead><tr><th>Donor</th><th>Round</th><th>Total</th></tr></thead>
      <tbody id="donorTableBody"></tbody>
    </table>
  </div>

  <script>
    if (new URLSearchParams(window.location.search).has('obs')) {
      document.body.classList.add('obs-mode');
    }

    var canvas = document.getElementById('wheelCanvas');
    var ctx = canvas.getContext('2d');
    var cx = canvas.width / 2, cy = canvas.height / 2, radius = 280;
    var state = null;
    var spinStartedAt = null;  // 로컬 시각 기준 회전 시작 (ms)

    function escapeHtml(text) {
      if (!text) return "";
      return String(text).replace(/&/g, "&amp;").replace(/</g, "&lt;").replace(/>/g, "&gt;")
                         .replace(/"/g, "&quot;").replace(/'/g, "&#039;");
    }

    function currentRotation() {
      if (!state) return 0;
      var spin = state.spin;
      if (!spin || spinStartedAt === null) return state.rotation;
      var p = Math.min((Date.now() - spinStartedAt) / spin.duration_ms, 1);
      return spin.start_rotation + spin.total_rotation * (1 - Math.pow(1 - p, 3));
    }

    function drawWheel() {
      ctx.clearRect(0, 0, canvas.width, canvas.height);
      if (state && state.segments.length) {
        var rotation = currentRotation();
        var per = (2 * Math.PI) / state.segments.length;
        state.segments.forEach(function(seg, i) {
          var start = rotation + i * per;
          ctx.beginPath();
          ctx.arc(cx, cy, radius, start, start + per);
          ctx.lineTo(cx, cy);
          ctx.fillStyle = seg.color;
          ctx.fill();
          ctx.strokeStyle = '#000';
          ctx.lineWidth = 2;
          ctx.stroke();
          ctx.save();
          ctx.translate(cx, cy);
          ctx.rotate(start + per / 2);
          ctx.textAlign = 'center';
          ctx.fillStyle = '#fff';
          ctx.font = 'bold 14px Arial';
          ctx.fillText(seg.text, radius * 0.65, 0);
          ctx.restore();
        });
      }
      ctx.beginPath();
      ctx.arc(cx, cy, 30, 0, 2 * Math.PI);
      ctx.fillStyle = '#ffd700';
      ctx.fill();
      ctx.strokeStyle = '#000';
      ctx.lineWidth = 3;
      ctx.stroke();
      requestAnimationFrame(drawWheel);
    }

    function renderPanels() {
      var timer = document.getElementById('timer');
      timer.textContent = state.timer.text;
      timer.className = state.timer.danger ? 'timer danger' : 'timer';
      document.getElementById('currentDonor').textContent = state.current_donor || '';
      document.getElementById('spinQueue').textContent =
        state.queue_size > 0 ? 'Spins in queue: ' + state.queue_size : '';

      var overlay = document.getElementById('resultOverlay');
      if (state.result) {
        overlay.innerHTML = escapeHtml(state.result.text).replace('\\n', '<br>');
        overlay.className = 'result-overlay ' + state.result.kind;
      } else {
        overlay.className = 'result-overlay hidden';
      }

      document.getElementById('donorPanel').style.display = state.ledger_enabled ? '' : 'none';
      var rows = (state.donors || []).map(function(d) {
        return '<tr><td>' + escapeHtml(d.name) + '</td><td>' +
          (d.round_bits > 0 ? d.round_bits.toLocaleString() : '-') + '</td><td>' +
          d.total_bits.toLocaleString() + '</td></tr>';
      }).join('');
      document.getElementById('donorTableBody').innerHTML =
        rows || '<tr><td colspan="3" style="color:#666;text-align:center">Waiting for donations...</td></tr>';
    }

    function poll() {
      fetch('/api/state')
        .then(function(r) { return r.json(); })
        .then(function(data) {
          var wasSpinning = state && state.spin;
          if (data.spin && (!wasSpinning || wasSpinning.start_rotation !== data.spin.start_rotation)) {
            spinStartedAt = Date.now() - data.spin.elapsed_ms;
          } else if (!data.spin) {
            spinStartedAt = null;
          }
          state = data;
          renderPanels();
        })
        .catch(function(err) { console.error(err); });
    }

    document.getElementById('btn-test').onclick = function() {
      var donor = document.getElementById('testDonor').value || 'TestViewer';
      var bits = parseInt(document.getElementById('testBits').value) || 100;
      fetch('/api/test-spin', {
        method: 'POST',
        headers: { 'Content-Type': 'application/json' },
        body: JSON.stringify({ donor: donor, bits: bits })
      }).then(poll);
    };
    document.getElementById('btn-round').onclick = function() {
      fetch('/api/start-round', { method: 'POST' }).then(poll);
    };

    setInterval(poll, 250);
    poll();
    requestAnimationFrame(drawWheel);
  </script>
</body>
</html>
"""
