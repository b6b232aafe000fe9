"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- 狀態機：集中管理 Match 狀態轉換
- Registry：管理 Match 的生命週期（唯一的狀態擁有者）
- Matchmaking：依押注等級配對
- Chain Bridge：PlayGame 合約的轉接層
- Session Gateway：Socket.IO 即時通道
- Coordinator：組裝以上元件的服務物件
"""
