"""
服務層

這個 package 包含純計算邏輯，不負責狀態轉換：
- TicTacToeService：勝負判定
- ValidationService：地址與押注金額驗證
- NamingService：Match ID 生成與 bytes32 編碼
- HistoryService：對局紀錄與排行榜
"""
