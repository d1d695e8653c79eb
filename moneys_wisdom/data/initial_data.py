"""
Bundled seed dataset (master data file).

Regenerate from the Data page ("Export seed module") and replace this file
to ship the current data with the next build.
Exported: 2025-12-15 02:40:14
"""

INITIAL_DATA = {
    "version": 2,
    "timestamp": 1765737270493,
    "ledger": {
        "freedomFund": 6029,
        "dreamFund": 4223,
        "playFund": 981.37,
        "transactions": [
            {
                "id": "1765737270489-1",
                "amount": 4756,
                "fundType": "FREEDOM",
                "type": "DEPOSIT",
                "description": "收入分配",
                "date": 1765737270489,
            },
            {
                "id": "1765737270489-2",
                "amount": 3805,
                "fundType": "DREAM",
                "type": "DEPOSIT",
                "description": "收入分配",
                "date": 1765737270489,
            },
            {
                "id": "1765737270489-3",
                "amount": 950.73,
                "fundType": "PLAY",
                "type": "DEPOSIT",
                "description": "收入分配",
                "date": 1765737270489,
            },
            {
                "id": "1765736232361",
                "amount": 223.8,
                "fundType": "PLAY",
                "type": "WITHDRAWAL",
                "description": "冬季内搭上衣",
                "date": 1765736232361,
            },
            {
                "id": "1765736168796-1",
                "amount": 1273,
                "fundType": "FREEDOM",
                "type": "DEPOSIT",
                "description": "收入分配",
                "date": 1765736168796,
            },
            {
                "id": "1765736168796-2",
                "amount": 1018,
                "fundType": "DREAM",
                "type": "DEPOSIT",
                "description": "收入分配",
                "date": 1765736168796,
            },
            {
                "id": "1765736168796-3",
                "amount": 254.44,
                "fundType": "PLAY",
                "type": "DEPOSIT",
                "description": "收入分配",
                "date": 1765736168796,
            },
            {
                "id": "1765700000000-D",
                "amount": 600,
                "fundType": "DREAM",
                "type": "WITHDRAWAL",
                "description": "实现梦想: 新跑鞋",
                "date": 1765700000000,
            },
        ],
        "dreamGoals": [
            {
                "id": "1765600000000",
                "name": "新跑鞋",
                "cost": 600,
                "isAchieved": True,
                "achievedDate": 1765700000000,
            },
            {
                "id": "1765650000000",
                "name": "日本旅行",
                "cost": 8000,
                "isAchieved": False,
            },
        ],
        "percentages": {"freedom": 50, "dream": 40, "play": 10},
    },
    "journal": [
        {
            "id": "1765725542522",
            "timestamp": 1765725542522,
            "items": [
                "坚持跑了3公里",
                "按时把收入分配到三个账户",
                "读完了一章书",
                "",
                "",
            ],
        },
        {
            "id": "1765296000000",
            "timestamp": 1765296000000,
            "items": [
                "第一次记录成功日记",
                "",
                "",
                "",
                "",
            ],
        },
    ],
}
