import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse

from auth import get_current_user_id
from db import Database, create_pool
from errors import AuthError, GlucoseDiaryError, StorageError, ValidationError
from logging_config import setup_logging
from models import ReadingIn
from repo_readings import ReadingRepo
from service_readings import ReadingService
from settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One pool per process, opened on startup and passed down explicitly.
    setup_logging()
    db = Database(create_pool())
    db.open()
    app.state.reading_service = ReadingService(ReadingRepo(db))
    logger.info("Glucose diary backend started")
    try:
        yield
    finally:
        db.close()


app = FastAPI(title="Glucose Diary Backend", lifespan=lifespan)


def get_service(request: Request) -> ReadingService:
    """Route dependency; tests replace it through `app.dependency_overrides`."""
    return request.app.state.reading_service


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(GlucoseDiaryError)
async def handle_app_error(request: Request, exc: GlucoseDiaryError):
    return error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def handle_bad_body(request: Request, exc: RequestValidationError):
    # FastAPI parses the body before running dependencies; keep 401 ahead of 400.
    try:
        get_current_user_id(request, request.cookies.get(settings.session_cookie_name))
    except AuthError as e:
        return error_response(e.status_code, e.message)

    first = exc.errors()[0] if exc.errors() else {}
    loc = first.get("loc", ())
    # JSON decode errors carry a character offset as the last element
    if len(loc) < 2 or not isinstance(loc[-1], str):
        return error_response(400, "Invalid request body")
    return error_response(400, f"Invalid value for {loc[-1]}")


@app.get("/health")
def health(svc: ReadingService = Depends(get_service)):
    try:
        svc.health_check()
        return {"ok": True}
    except StorageError:
        logger.exception("DB health check failed")
        return error_response(500, "DB health check failed")


@app.get("/readings")
def list_readings(
    user_id: str = Depends(get_current_user_id),
    svc: ReadingService = Depends(get_service),
):
    try:
        readings = svc.list_recent(user_id)
    except StorageError:
        logger.exception("Error fetching readings for user %s", user_id)
        return error_response(500, "Failed to fetch readings")
    return {"readings": [r.public() for r in readings]}


@app.post("/readings")
def save_reading(
    body: ReadingIn,
    user_id: str = Depends(get_current_user_id),
    svc: ReadingService = Depends(get_service),
):
    try:
        reading = svc.submit(
            user_id,
            pre_reading=body.pre_reading,
            post_reading=body.post_reading,
            reading_date=body.reading_date,
        )
    except ValidationError as e:
        return error_response(400, e.message)
    except StorageError:
        logger.exception("Error saving reading for user %s", user_id)
        return error_response(500, "Failed to save reading")
    return {"reading": reading.public()}


@app.get("/ui", response_class=HTMLResponse)
def ui():
    return """
<!doctype html>
<html>
<head>
  <meta charset="utf-8"/>
  <title>Glucose Diary</title>
  <script src="https://www.gstatic.com/charts/loader.js"></script>
  <style>
    body { font-family: Arial, sans-serif; margin: 20px; }
    input, button { padding: 8px; }
    .card { padding: 16px; border: 1px solid #ddd; margin: 12px 0; border-radius: 8px; }
    .error { color: #c62828; }
    .success { color: #2e7d32; }
    table { width: 100%; border-collapse: collapse; }
    th, td { padding: 10px; text-align: left; border-bottom: 1px solid #eee; }
    #chart { height: 400px; }
  </style>
</head>
<body>
  <h2>Glucose Diary</h2>
  <div class="card">
    Session token: <input id="token" style="width:420px"/>
    <button onclick="saveToken()">Use token</button>
  </div>

  <div class="card">
    <h3>Add Reading</h3>
    Pre-reading (before eating): <input id="pre" type="number" step="0.01" min="0" max="600" placeholder="e.g., 100"/>
    Post-reading (after eating): <input id="post" type="number" step="0.01" min="0" max="600" placeholder="e.g., 140"/>
    Date: <input id="date" type="date"/>
    <button onclick="save()">Save Reading</button>
    <p id="msg"></p>
  </div>

  <div class="card">
    <h3>Reading History (Last 3 Months)</h3>
    <div id="chart"><p>No readings yet. Add your first reading above!</p></div>
  </div>

  <div class="card">
    <h3>Recent Readings</h3>
    <table>
      <thead><tr><th>Date</th><th>Pre-Reading</th><th>Post-Reading</th></tr></thead>
      <tbody id="rows"></tbody>
    </table>
  </div>

<script>
const today = new Date().toISOString().split('T')[0];
let readings = [];
let chartReady = false;

document.getElementById('date').value = today;
document.getElementById('date').max = today;
document.getElementById('token').value = localStorage.getItem('glucoseToken') || '';

google.charts.load('current', {packages: ['corechart']});
google.charts.setOnLoadCallback(() => { chartReady = true; draw(); });
window.addEventListener('resize', draw);

function headers(){
  return {'Content-Type': 'application/json',
          'Authorization': 'Bearer ' + (localStorage.getItem('glucoseToken') || '')};
}
function show(text, cls){
  const msg = document.getElementById('msg');
  msg.textContent = text;
  msg.className = cls;
}
function saveToken(){
  localStorage.setItem('glucoseToken', document.getElementById('token').value.trim());
  load();
}
async function load(){
  const res = await fetch('/readings', {headers: headers()});
  const data = await res.json();
  if (!res.ok) { show(data.error, 'error'); return; }
  readings = data.readings;
  draw();
  table();
}
async function save(){
  const body = {
    preReading: document.getElementById('pre').value,
    postReading: document.getElementById('post').value,
    date: document.getElementById('date').value,
  };
  if (!body.preReading && !body.postReading) { show('At least one reading is required', 'error'); return; }
  if (body.date > today) { show('Future dates are not allowed', 'error'); return; }
  const res = await fetch('/readings', {method: 'POST', headers: headers(), body: JSON.stringify(body)});
  const data = await res.json();
  if (!res.ok) { show(data.error, 'error'); return; }
  show('Reading saved successfully!', 'success');
  document.getElementById('pre').value = '';
  document.getElementById('post').value = '';
  document.getElementById('date').value = today;
  await load();
}
function label(d){
  return new Date(d + 'T00:00:00').toLocaleDateString('en-US', {month: 'short', day: 'numeric'});
}
function draw(){
  if (!chartReady || readings.length === 0) return;
  const data = new google.visualization.DataTable();
  data.addColumn('string', 'Date');
  data.addColumn('number', 'Pre-Reading (Before Eating)');
  data.addColumn('number', 'Post-Reading (After Eating)');
  data.addRows(readings.map(r => [label(r.reading_date), r.pre_reading, r.post_reading]));
  new google.visualization.LineChart(document.getElementById('chart')).draw(data, {
    title: 'Glucose Readings - Last 3 Months',
    curveType: 'function',
    legend: {position: 'bottom'},
    hAxis: {title: 'Date'},
    vAxis: {title: 'Blood Sugar Level (mg/dL)', minValue: 0},
    colors: ['#4285F4', '#EA4335'],
    interpolateNulls: true,
    pointSize: 7,
    lineWidth: 3,
  });
}
function table(){
  const rows = document.getElementById('rows');
  rows.innerHTML = '';
  [...readings].reverse().slice(0, 10).forEach(r => {
    const tr = document.createElement('tr');
    [r.reading_date,
     r.pre_reading != null ? r.pre_reading + ' mg/dL' : '-',
     r.post_reading != null ? r.post_reading + ' mg/dL' : '-'].forEach(v => {
      const td = document.createElement('td');
      td.textContent = v;
      tr.appendChild(td);
    });
    rows.appendChild(tr);
  });
}
if (localStorage.getItem('glucoseToken')) load();
</script>
</body>
</html>
"""
