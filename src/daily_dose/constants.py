"""Policy constants shared by the scheduler, selectors, quiz builder and pathway."""

# Review scheduler: one interval per box, box N = len(REVIEW_INTERVALS_DAYS)
REVIEW_INTERVALS_DAYS = (1, 3, 7, 14, 30)
MIN_BOX = 1
MAX_BOX = len(REVIEW_INTERVALS_DAYS)
DUE_HOUR = 8
DUE_MINUTE = 0

# Session card selection
CARDS_PER_SESSION_MIN = 3
CARDS_PER_SESSION_MAX = 5
CARDS_PER_SESSION_DEFAULT = 4
NO_BATCH = "no-batch"

# Warm-up recall
WARMUP_RECALL_MAX = 2
RECALL_ELIGIBILITY_DAYS = 7

# Session quiz
QUIZ_LENGTH_MIN = 4
QUIZ_LENGTH_MAX = 6
QUIZ_LENGTH_DEFAULT = 5
QUIZ_RECALL_CARD_LIMIT = 2
QUIZ_RECALL_QUESTION_LIMIT = 2
QUIZ_MAX_TRUE_FALSE = 1
QUIZ_MAX_TRUE_FALSE_RELAXED = 2

# Recent-question exclusion
RECENT_SESSION_EXCLUSION_WINDOW = 3

# Session lifecycle and scoring
SESSION_RESUME_WINDOW_HOURS = 8
CARD_CORRECT_THRESHOLD = 0.7
XP_PER_SESSION = 10
XP_PER_CORRECT = 5
HISTORY_SESSION_LIMIT = 30

# Pathway mastery
PATHWAY_SECURE_ACCURACY = 0.8
PATHWAY_SECURE_MIN_SESSIONS = 2
PATHWAY_RAG_GREEN = 0.8
PATHWAY_RAG_AMBER = 0.4
