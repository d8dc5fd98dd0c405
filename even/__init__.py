"""Even Dating review service.

Post-chat reviews, one-time emergency reports and abuse reports between
matched users, with weekly quotas, keyword moderation and a strike ledger.

Modules:
    - reviews: eligibility gate, quota, moderation, strikes, emergency grants
    - collaborators: read-only views of users and chat history
    - middleware: request rate limiting
"""
