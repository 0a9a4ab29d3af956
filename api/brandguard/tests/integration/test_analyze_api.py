"""Integration tests for the analysis endpoints."""

import base64

from brandguard.models.exceptions import ContentBlockedException, GeminiRateLimitException
from brandguard.services.prompts import MEDIA_ONLY_REVISION_MESSAGE


class TestTextAnalysisAPI:
    """Test cases for caption analysis."""

    def test_report_is_stored_with_insight(self, client, gemini, workspace, passing_report):
        gemini.reply("analyze_text", passing_report)
        client.post(f"/workspaces/{workspace['id']}/rules", json={"text": "Mention #BrandPartner"})

        response = client.post(
            f"/workspaces/{workspace['id']}/analyze/text",
            json={"content": "#ad Made with 100% organic materials!", "campaign_name": "Spring"},
            headers={"X-User-Name": "Dana"},
        )

        assert response.status_code == 200
        report = response.json()
        assert report["overall_score"] == 95
        assert report["status"] == "approved"
        assert report["workspace_id"] == workspace["id"]
        assert report["user_name"] == "Dana"
        assert report["campaign_name"] == "Spring"
        assert [r["text"] for r in report["custom_rules_applied"]] == ["Mention #BrandPartner"]
        assert report["source_media"] is None

        history = client.get(f"/workspaces/{workspace['id']}/reports").json()
        assert [r["id"] for r in history] == [report["id"]]
        # insight is attached by the background task once the response is out
        assert history[0]["strategic_insight"] == "Lead with the disclosure to build trust."

    def test_fallback_report_gets_no_insight(self, client, gemini, workspace):
        gemini.reply("analyze_text", text="not json at all")

        response = client.post(f"/workspaces/{workspace['id']}/analyze/text", json={"content": "caption"})

        assert response.status_code == 200
        assert response.json()["overall_score"] == 0
        assert response.json()["checks"][0]["name"] == "Response Error"
        assert gemini.calls_for("insight") == []

    def test_missing_workspace(self, client, gemini):
        response = client.post("/workspaces/missing/analyze/text", json={"content": "caption"})

        assert response.status_code == 404
        gemini.mock.assert_not_called()

    def test_blank_content(self, client, gemini, workspace):
        response = client.post(f"/workspaces/{workspace['id']}/analyze/text", json={"content": "  "})

        assert response.status_code == 422

    def test_contract_violation_is_bad_gateway(self, client, gemini, workspace):
        gemini.reply("analyze_text", {"overall_score": 50})

        response = client.post(f"/workspaces/{workspace['id']}/analyze/text", json={"content": "caption"})

        assert response.status_code == 502
        assert response.json()["error"] == "ContractViolation"
        assert client.get(f"/workspaces/{workspace['id']}/reports").json() == []

    def test_blocked_content(self, client, gemini, workspace):
        gemini.reply("analyze_text", error=ContentBlockedException("SAFETY"))

        response = client.post(f"/workspaces/{workspace['id']}/analyze/text", json={"content": "caption"})

        assert response.status_code == 422
        assert response.json()["block_reason"] == "SAFETY"

    def test_rate_limited_upstream(self, client, gemini, workspace):
        gemini.reply("analyze_text", error=GeminiRateLimitException(retry_after=30))

        response = client.post(f"/workspaces/{workspace['id']}/analyze/text", json={"content": "caption"})

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "30"


class TestMediaAnalysisAPI:
    """Test cases for image and video uploads."""

    def test_image_is_stored(self, client, gemini, workspace, multimodal_report, png_bytes):
        gemini.reply("analyze_image", multimodal_report)

        response = client.post(
            f"/workspaces/{workspace['id']}/analyze/image",
            files={"file": ("post.png", png_bytes, "image/png")},
            data={"caption": "#ad new kicks", "influencer_handle": "@runner"},
        )

        assert response.status_code == 200
        report = response.json()
        assert report["analysis_type"] == "image"
        assert report["status"] == "pending"
        assert report["influencer_handle"] == "@runner"
        media = report["source_media"]
        assert media["mime_type"] == "image/png"
        assert media["url"].endswith(f"/static/media/{workspace['id']}/{report['id']}.png")
        assert client.get(media["url"]).content == png_bytes

    def test_image_that_is_not_an_image(self, client, gemini, workspace):
        response = client.post(
            f"/workspaces/{workspace['id']}/analyze/image",
            files={"file": ("post.png", b"plain text", "image/png")},
        )

        assert response.status_code == 400
        gemini.mock.assert_not_called()

    def test_video_is_transcribed_first(self, client, gemini, workspace):
        gemini.reply("transcribe", text="Hey, this is an ad for my new shoes.")
        gemini.reply("analyze_video", {
            "overall_score": 88,
            "summary": "Minor visual issue.",
            "checks": [{"name": "Spoken Disclosure", "status": "pass", "details": "Said 'ad'.", "modality": "audio"}],
        })

        response = client.post(
            f"/workspaces/{workspace['id']}/analyze/video",
            files={"file": ("clip.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4")},
        )

        assert response.status_code == 200
        report = response.json()
        assert report["source_content"] == "Hey, this is an ad for my new shoes."
        assert report["source_media"] == {"mime_type": "video/mp4", "url": None}

    def test_video_with_transcript_skips_transcription(self, client, gemini, workspace):
        gemini.reply("analyze_video", {"overall_score": 95, "summary": "Compliant.", "checks": []})

        response = client.post(
            f"/workspaces/{workspace['id']}/analyze/video",
            files={"file": ("clip.mp4", b"video-bytes", "video/mp4")},
            data={"transcript": "My own transcript #ad"},
        )

        assert response.status_code == 200
        assert gemini.calls_for("transcribe") == []

    def test_transcribe_endpoint(self, client, gemini):
        gemini.reply("transcribe", text="Spoken words")

        response = client.post("/analyze/transcribe", files={"file": ("clip.webm", b"video", "video/webm")})

        assert response.json() == {"transcript": "Spoken words"}

    def test_transcribe_rejects_images(self, client, gemini, png_bytes):
        response = client.post("/analyze/transcribe", files={"file": ("a.png", png_bytes, "image/png")})

        assert response.status_code == 400


class TestRevisionAndBriefAPI:
    """Test cases for rewrites, briefs and image fixes."""

    def test_revision_is_saved_on_report(self, client, gemini, workspace, failing_report):
        gemini.reply("analyze_text", failing_report)
        gemini.reply("revision", text="#ad My new sneakers are made with 100% organic materials!")
        report = client.post(f"/workspaces/{workspace['id']}/analyze/text", json={"content": "my sneakers"}).json()

        response = client.post(f"/workspaces/{workspace['id']}/reports/{report['id']}/revision")

        assert response.status_code == 200
        assert response.json()["revised_content"].startswith("#ad")
        stored = client.get(f"/workspaces/{workspace['id']}/reports").json()[0]
        assert stored["suggested_revision"] == response.json()["revised_content"]

    def test_revision_with_only_media_issues(self, client, gemini, workspace):
        gemini.reply("analyze_video", {
            "overall_score": 50,
            "summary": "No spoken disclosure.",
            "checks": [{"name": "Spoken Disclosure", "status": "fail", "details": "None.", "modality": "audio"}],
        })
        report = client.post(
            f"/workspaces/{workspace['id']}/analyze/video",
            files={"file": ("clip.mp4", b"video", "video/mp4")},
            data={"transcript": "hello"},
        ).json()

        response = client.post(f"/workspaces/{workspace['id']}/reports/{report['id']}/revision")

        assert response.json()["revised_content"] == MEDIA_ONLY_REVISION_MESSAGE
        assert gemini.calls_for("revision") == []

    def test_revision_of_passing_report(self, client, gemini, workspace, passing_report):
        gemini.reply("analyze_text", passing_report)
        report = client.post(f"/workspaces/{workspace['id']}/analyze/text", json={"content": "#ad caption"}).json()

        response = client.post(f"/workspaces/{workspace['id']}/reports/{report['id']}/revision")

        assert response.status_code == 409
        assert response.json()["message"] == "No failing checks to revise"
        assert client.get(f"/workspaces/{workspace['id']}/reports").json()[0]["suggested_revision"] is None
        assert gemini.calls_for("revision") == []

    def test_brief(self, client, gemini, workspace):
        brief = {
            "campaign_overview": "Organic sneaker launch.",
            "key_dos": ["Start with #ad"],
            "key_donts": ["No health claims"],
            "disclosure_guide": "First line.",
            "compliant_example": "#ad Made with 100% organic materials!",
        }
        gemini.reply("brief", brief)

        response = client.post(
            f"/workspaces/{workspace['id']}/briefs",
            json={"product": "Sneakers", "message": "Comfort", "audience": "Runners"},
        )

        assert response.status_code == 200
        assert response.json() == brief

    def test_image_fix(self, client, gemini, png_bytes):
        gemini.reply("image_fix", response={"candidates": [{"content": {"parts": [
            {"inlineData": {"mimeType": "image/png", "data": base64.b64encode(b"edited").decode()}},
        ]}}]})

        response = client.post(
            "/images/fix",
            files={"file": ("post.png", png_bytes, "image/png")},
            data={"instruction": "Add a visible #ad label"},
        )

        assert response.status_code == 200
        assert base64.b64decode(response.json()["data_base64"]) == b"edited"
