from workspace_hub.services.system_telemetry import collect_telemetry, summarize_samples


def test_summary_from_samples():
    samples = [
        {"ms": 10.0, "status": 200},
        {"ms": 40.0, "status": 200},
        {"ms": 30.0, "status": 503},
        {"ms": 20.0, "status": 404},
    ]
    snap = summarize_samples(samples, started_at=100.0, window_seconds=600, now=160.0)
    assert snap.uptime_seconds == 60.0
    assert snap.avg_response_ms == 25.0
    assert snap.p95_response_ms == 40.0
    assert snap.availability == 75.0
    assert snap.sample_count == 4
    assert snap.source == "measured"


def test_no_samples_means_no_numbers():
    snap = summarize_samples([], started_at=100.0, window_seconds=600, now=90.0)
    assert snap.avg_response_ms is None
    assert snap.p95_response_ms is None
    assert snap.availability is None
    assert snap.sample_count == 0
    assert snap.uptime_seconds == 0.0


def test_collect_uses_recorded_requests(app, client):
    client.get("/api/v1/health/ready")
    assert collect_telemetry(app).sample_count == 0

    res = client.get("/api/v1/analytics/scope")
    assert res.status_code == 400
    snap = collect_telemetry(app)
    assert snap.sample_count == 1
    assert snap.availability == 100.0
    assert snap.window_seconds == app.config["TELEMETRY_WINDOW_SECONDS"]
    assert snap.uptime_seconds >= 0
