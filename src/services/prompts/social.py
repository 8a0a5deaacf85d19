"""Social post copy prompt templates."""

# Social metadata prompt v1
# Template placeholders: {topic}, {hook}, {body}
SOCIAL_METADATA_V1 = """
You are a social media growth expert specializing in historical viral content.
Based on the following historical video script, generate:
1. A catchy YouTube Title (under 70 chars, includes emojis).
2. A detailed YouTube Description (including hashtags).
3. A punchy Instagram Reels Caption (with 10 viral history hashtags).

Topic: {topic}
Hook: {hook}
Body: {body}

Return ONLY a JSON object with this structure:
{{
  "youtubeTitle": "string",
  "youtubeDescription": "string",
  "instagramCaption": "string"
}}
"""
