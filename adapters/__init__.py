"""
어댑터 레이어

외부 저장소(SQLite)와의 연동을 담당.
Ledger 서비스는 core.ledger.store를 통해서만 접근.
"""
