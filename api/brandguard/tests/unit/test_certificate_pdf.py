"""Unit tests for the certificate PDF."""

from datetime import datetime, timezone

import pytest

from brandguard.services.certificate_pdf import render_certificate_pdf, verdict


@pytest.fixture
def snapshot(passing_report):
    return dict(
        passing_report,
        id="rep-1",
        workspace_id="ws-1",
        timestamp="2024-05-01T10:00:00+00:00",
        source_content="#ad <b>My</b> sneakers & more",
        analysis_type="text",
        custom_rules_applied=[{"id": "r1", "text": "Mention #BrandPartner"}],
        campaign_name="Spring",
        influencer_handle="@runner",
        client_brand="Stride",
        user_name="Dana",
        status="approved",
    )


class TestCertificatePdf:
    """Test cases for render_certificate_pdf."""

    def test_verdict(self):
        assert verdict(90) == "GREENLIT"
        assert verdict(89) == "NEEDS REVISION"

    def test_renders_pdf(self, snapshot):
        pdf = render_certificate_pdf(snapshot, "cert_123", issued_at=datetime(2024, 5, 2, tzinfo=timezone.utc))

        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 1000

    def test_renders_with_image(self, snapshot, png_bytes):
        snapshot["analysis_type"] = "image"

        assert render_certificate_pdf(snapshot, "cert_123", image_bytes=png_bytes).startswith(b"%PDF")

    def test_renders_minimal_video_report(self):
        report = {
            "overall_score": 30,
            "summary": "No spoken disclosure.",
            "analysis_type": "video",
            "source_content": "",
            "checks": [{"name": "Spoken Disclosure", "status": "fail", "details": "None", "modality": "audio"}],
        }

        assert render_certificate_pdf(report, "cert_456").startswith(b"%PDF")
