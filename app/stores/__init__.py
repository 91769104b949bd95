"""
Stores layer - persistence behind the lifecycle engine.

DESIGN PRINCIPLE:
- Services own the rules, stores own atomicity
- Every issue mutation funnels through IssueStore.apply
- Mock and Firestore stores satisfy the same contract
"""
