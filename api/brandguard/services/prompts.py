from __future__ import annotations

from typing import Iterable, Optional

STANDARD_CLAIM = "made with 100% organic materials"

TEXT_ANALYSIS_PROMPT = """Act as an expert social media compliance officer for a major brand. Your task is to analyze the following sponsored post caption for compliance with FTC guidelines, brand safety, and specific campaign requirements.
{context}
**Post Caption to Analyze:**
"{content}"

**Standard Compliance Rules:**
1.  **FTC Disclosure:** The post MUST contain a clear and conspicuous disclosure, such as #ad, #sponsored, or "Paid partnership". A disclosure buried among unrelated hashtags at the end is a warning, not a pass.
2.  **Brand Safety:** The post must NOT contain any profanity, offensive language, or controversial topics.
3.  **Claim Accuracy:** The post must accurately represent the product and mention "{claim}".
{custom_rules}
Please provide a strict analysis and return the results in the required JSON format."""

IMAGE_ANALYSIS_PROMPT = """Act as an expert social media compliance officer. Analyze the provided image and its caption for compliance. You must check BOTH the visual content and the text content.
{context}
**Image Caption for Text Analysis:**
"{caption}"

**Standard Compliance Rules:**
1.  **FTC Disclosure (Text):** The caption must contain a clear disclosure (e.g., #ad, #sponsored).
2.  **Brand Safety (Visual & Text):** No profanity in text, no inappropriate imagery.
3.  **Brand Representation (Visual):** The product must be clearly visible and not depicted negatively.
{custom_rules}
Provide a strict analysis covering both modalities ('visual' for image, 'text' for caption) and return the results in the required JSON format."""

VIDEO_ANALYSIS_PROMPT = """Act as an expert social media compliance officer. Analyze the provided video and its transcript for compliance with FTC guidelines, brand safety, and custom campaign requirements. You must perform checks on BOTH the visual content of the video and the audio content from the transcript.
{context}
**Video Transcript for Audio Analysis:**
"{transcript}"

**Standard Compliance Rules (Check both Audio & Visuals):**
1.  **FTC Disclosure:** Audio must contain a spoken disclosure, and visuals should have a text overlay.
2.  **Brand Safety:** No profanity in audio, no inappropriate imagery in visuals.
3.  **Brand Representation:** Speaker must mention "{claim}", product must be clearly visible.
{custom_rules}
Provide a strict analysis covering both modalities and return the results in the required JSON format. For each check, specify the modality as 'audio' or 'visual'."""

TRANSCRIBE_PROMPT = (
    "Provide a full and accurate transcript of the audio in the provided video file. "
    "Return only the transcribed text, with no additional commentary or formatting."
)

REVISION_PROMPT = """Act as an expert social media copywriter. Your task is to revise the following {content_label} to make it fully compliant based on the text-based issues identified.

**Original Content:**
"{original}"

**Identified Issues:**
{issues}

**Instructions:**
Rewrite the content to fix ALL identified text-based issues. Maintain the original tone. Output ONLY the revised text."""

MEDIA_ONLY_REVISION_MESSAGE = (
    "The identified issues are purely visual or audio-based and cannot be fixed by revising "
    "the text caption. Please address the media content directly."
)

INSIGHT_PROMPT = """Act as a senior influencer-marketing strategist. A compliance scan produced the result below.

**Content ({analysis_type}):**
"{content}"

**Score:** {score}/100
**Summary:** {summary}
**Findings:**
{findings}

In two or three sentences, give the brand team one strategic insight: the biggest risk this content carries for the campaign and the single most valuable next step. Output plain text only."""

BRIEF_PROMPT = """Act as a brand compliance lead writing a creator brief. Produce a "Greenlight Brief" that lets an influencer create content that passes compliance on the first try.

**Product:** {product}
**Key Message:** {message}
**Target Audience:** {audience}

The brief must cover FTC disclosure placement (clear and conspicuous, at the start of the caption, spoken in video), brand safety, and the required claim "{claim}".
{custom_rules}
Every custom campaign rule must appear in key_dos. Return the brief in the required JSON format."""

IMAGE_FIX_PROMPT = """Edit the provided influencer image to apply the following compliance fix while keeping the product, composition and style unchanged:

{instruction}

Return only the edited image."""


def custom_rules_block(rules: Optional[Iterable[str]]) -> str:
    """Numbered custom rules section, empty when there are none."""
    texts = [r for r in (rules or []) if r and r.strip()]
    if not texts:
        return ""
    numbered = "\n".join(f"{i}. {text}" for i, text in enumerate(texts, start=1))
    return (
        "\n**Additional Custom Campaign Rules:**\n"
        "You MUST strictly enforce the following custom rules provided by the user. "
        "For each custom rule, create a separate check in the output JSON with the name "
        "prefixed by \"Custom Rule:\".\n"
        f"{numbered}\n"
    )


def context_block(
    campaign_name: Optional[str] = None,
    influencer_handle: Optional[str] = None,
    client_brand: Optional[str] = None,
) -> str:
    lines = []
    if campaign_name:
        lines.append(f"- Campaign: {campaign_name}")
    if influencer_handle:
        lines.append(f"- Influencer: {influencer_handle}")
    if client_brand:
        lines.append(f"- Brand: {client_brand}")
    if not lines:
        return ""
    return "\n**Campaign Context:**\n" + "\n".join(lines) + "\n"
