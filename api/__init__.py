"""
API 層

- matchmaking：加入 / 離開配對佇列
- games：查詢對局、落子、鏈上診斷
- stats：健康檢查、統計、排行榜
"""
