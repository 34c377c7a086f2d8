"""
Prompts for the ingestion pipeline (OCR cleanup and fast document analysis).
"""

OCR_ENHANCEMENT_PROMPT_TEMPLATE = """You are an expert at cleaning up and enhancing OCR-extracted text. Please:

1. Fix common OCR errors (character misrecognition, spacing issues, etc.)
2. Improve formatting and structure
3. Correct obvious spelling and grammar errors
4. Maintain the original meaning and content

Original OCR text:
{raw_text}

Please provide:
CLEANED_TEXT: The corrected and formatted text
SUMMARY: A brief one-paragraph summary of what the document appears to be about"""

FAST_ANALYSIS_PROMPT_TEMPLATE = """Analyze this contract quickly and provide key insights in JSON format:

{content}

Provide a JSON response with:
- contractType: brief type classification
- keyTerms: array of 3-5 most important terms
- riskLevel: "low", "medium", "high"
- mainConcerns: array of 2-3 key concerns
- summary: 2-sentence summary

Respond only with valid JSON."""
