"""
Prompt templates for the career analysis request.

The templates use LangChain's f-string syntax: single braces are input
variables, doubled braces are literal braces of the JSON schema.
"""

PROFILE_TEMPLATE = """You are an expert career counselor and job market analyst. Analyze the following user profile and provide a comprehensive career analysis in JSON format.

User Profile:
- Target Job: {target_job}
- Location Preference: {location}
- Current Education: {education}
- Current Skills: {skills}
- Experience: {experience} years
"""

OUTPUT_SCHEMA_TEMPLATE = """Please provide a detailed analysis in the following JSON structure:

{{
  "jobPossibility": {{
    "bangladesh": <number 0-100>,
    "international": <number 0-100>,
    "none": <number 0-100>
  }},
  "educationGap": {{
    "required": "<minimum education requirement>",
    "userHas": "{education}",
    "gap": "<explanation of gap>",
    "steps": ["<step 1>", "<step 2>", ...]
  }},
  "skillsGap": {{
    "missing": [
      {{
        "skill": "<skill name>",
        "difficulty": "<Beginner/Intermediate/Expert>",
        "timeToLearn": "<estimated time>"
      }}
    ],
    "certifications": ["<certification 1>", "<certification 2>", ...]
  }},
  "migrationGuide": {{
    "languageRequirements": "<IELTS/TOEFL requirements>",
    "visaRequirements": "<visa information>",
    "certifications": ["<international certifications>"]
  }},
  "roadmap": {{
    "shortTerm": {{
      "duration": "1-3 months",
      "tasks": ["<task 1>", "<task 2>", ...]
    }},
    "midTerm": {{
      "duration": "3-6 months",
      "tasks": ["<task 1>", "<task 2>", ...]
    }},
    "longTerm": {{
      "duration": "1 year+",
      "tasks": ["<task 1>", "<task 2>", ...]
    }}
  }},
  "currentOpportunities": ["<job role 1>", "<job role 2>", ...],
  "futureOpportunities": ["<job role 1>", "<job role 2>", ...],
  "riskForecast": {{
    "level": "<Low/Medium/High>",
    "explanation": "<explanation of automation risk>"
  }}
}}
"""

RULES_TEXT = """IMPORTANT:
1. The jobPossibility values MUST sum to exactly 100.
2. Provide realistic and actionable advice based on current job market trends.
3. Consider Bangladesh's job market specifically when analyzing local opportunities.
4. Return ONLY valid JSON, no additional text or markdown code fences."""

CAREER_ANALYSIS_PROMPT_TEMPLATE = "\n".join(
    [PROFILE_TEMPLATE, OUTPUT_SCHEMA_TEMPLATE, RULES_TEXT]
)
