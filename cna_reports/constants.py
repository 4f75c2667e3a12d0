"""
CNA Reference Data
==================
Question text lookup, section titles, and export constants.
"""

from typing import Dict

# Statement text for each Capability Needs Analysis question code
QUESTION_TEXT_MAPPING: Dict[str, str] = {
    'A1': "I have a clear understanding of the organization's Corporate Plan and strategic direction.",
    'A2': "I understand how my role contributes to the achievement of the organization's goals.",
    'A3': 'I am aware of the key national policies (e.g., MTDP IV, Vision 2050) that affect my work.',
    'B1': 'I consistently apply public service values and the Code of Conduct in my work.',
    'B2': 'I am proficient in using the standard operating procedures (SOPs) relevant to my role.',
    'B3': 'I effectively manage my time and prioritize tasks to meet deadlines.',
    'B4': 'I actively seek ways to improve processes and efficiency in my work.',
    'C1': 'I effectively lead and motivate my team to achieve its objectives (for managers/supervisors).',
    'C2': 'I provide constructive feedback and coaching to support the development of my team members.',
    'C3': 'I actively participate in my own professional development and seek learning opportunities.',
    'D1': 'I understand the performance management system (SPA) and my role within it.',
    'D2': 'I set clear and measurable performance objectives for myself/my team.',
    'D3': 'I regularly review performance and address any issues proactively.',
    'E1': 'I am proficient in using standard office software (e.g., Microsoft Word, Excel, Outlook).',
    'E2': 'I am comfortable using specialized software or systems required for my job.',
    'E3': 'I can troubleshoot basic IT issues effectively.',
    'F1': 'I have a clear understanding of the Public Finance Management Act (PFMA).',
    'F2': 'I follow correct procedures for procurement and asset management.',
    'F3': 'I can prepare or contribute to budget submissions for my unit.',
    'F4': 'I understand financial reporting requirements relevant to my role.',
    'F5': 'I adhere to financial delegations and authorities.',
    'F6': 'I can conduct financial acquittals correctly.',
    'F7': 'I am aware of fraud prevention and control measures.',
    'G1': 'I communicate clearly and effectively in writing (e.g., reports, emails).',
    'G2': 'I communicate clearly and effectively when speaking (e.g., meetings, presentations).',
    'G3': 'I build and maintain positive relationships with colleagues and stakeholders.',
    'G4': 'I can effectively handle difficult conversations and resolve conflicts.',
    'G5': 'I represent the organization professionally to external stakeholders.',
    'G6': 'I adhere to established communication protocols and branding guidelines.',
    'H1': 'The organisation has a TNA process to identify staff training needs.',
    'H2': 'Rate out of 10 – My supervisor discusses my training and development needs with me.',
    'H3': 'What methods are used to assess training needs in your agency?',
    'H4': 'The organisation has a documented TNA process that is followed consistently.',
    'H5': 'Rate out of 10 – I am provided with opportunities to attend relevant training.',
    'H6': 'Rate out of 10 – The training I have received has been effective in improving my job performance.',
    'H7': 'List any specific courses you believe would be beneficial for your role.',
    'H8': 'What topics are you most interested in for your professional development?',
    'H9': 'What are your top 1-3 learning and development priorities for the next year?',
}

SECTION_TITLES: Dict[str, str] = {
    'A': 'Strategic Understanding',
    'B': 'Systems and Processes',
    'C': 'Staff Engagement',
    'D': 'Performance',
    'E': 'Workforce Planning',
    'F': 'Learning & Development',
    'G': 'Culture & Leadership',
    'H': 'Training Needs',
}

# Rating scale pre-seeded into every tally
RATING_SCALE = tuple(range(1, 11))

UNKNOWN_QUESTION_TEMPLATE = "Unknown Question ({code})"

# Heading accent colours
HEADING_COLORS = {
    'Blue': '2563EB',
    'Green': '16A34A',
}
TABLE_HEADER_COLOR = '2980B9'

# Export tuning
DOCX_IMAGE_SCALE = 2.5
XLSX_SHEET_NAME_MAX = 31
XLSX_SUMMARY_SHEET = 'Report Summary'
XLSX_EMPTY_SHEET = 'No Tables'
XLSX_COLUMN_PADDING = 2

MIME_TYPES = {
    'pdf': 'application/pdf',
    'docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'csv': 'text/csv; charset=utf-8',
    'json': 'application/json; charset=utf-8',
}

PDF_IMAGE_ERROR_TEXT = "[Chart could not be rendered in PDF]"
DOCX_IMAGE_ERROR_TEXT = " [Image Error] "
NO_TABLE_CSV_MESSAGE = "No table data found to export to CSV."
NO_TABLE_COPY_MESSAGE = "No table data found to copy."
NO_TABLE_SHEET_MESSAGE = "No tabular data to export."
COPY_SUCCESS_MESSAGE = "Table data copied to clipboard! You can now paste it into Google Sheets or Excel."
