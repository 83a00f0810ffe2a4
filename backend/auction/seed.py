"""Sample master lot list used by ``flask db-reset``. Prices are in minor units."""

SAMPLE_LOTS = [
    {'name': 'Jos Buttler', 'nationality': 'England', 'category': 'Wicket-Keeper',
     'base_price': 20000000, 'specialization': 'Explosive Batting', 'is_overseas': True},
    {'name': 'Mohammed Shami', 'nationality': 'India', 'category': 'Fast Bowler',
     'base_price': 15000000, 'specialization': 'Pace & Swing', 'is_overseas': False},
    {'name': 'Mitchell Starc', 'nationality': 'Australia', 'category': 'Fast Bowler',
     'base_price': 20000000, 'specialization': 'Left-arm Pace', 'is_overseas': True},
    {'name': 'Marcus Stoinis', 'nationality': 'Australia', 'category': 'All-Rounder',
     'base_price': 10000000, 'specialization': 'Power Hitting', 'is_overseas': True},
    {'name': 'Devdutt Padikkal', 'nationality': 'India', 'category': 'Batsman',
     'base_price': 10000000, 'specialization': 'Left-hand Opening', 'is_overseas': False},
    {'name': 'Kagiso Rabada', 'nationality': 'South Africa', 'category': 'Fast Bowler',
     'base_price': 17500000, 'specialization': 'Express Pace', 'is_overseas': True},
    {'name': 'Yuzvendra Chahal', 'nationality': 'India', 'category': 'Spin Bowler',
     'base_price': 12500000, 'specialization': 'Leg-spin', 'is_overseas': False},
    {'name': 'Glenn Maxwell', 'nationality': 'Australia', 'category': 'All-Rounder',
     'base_price': 15000000, 'specialization': '360-degree Batting', 'is_overseas': True},
    {'name': 'Prithvi Shaw', 'nationality': 'India', 'category': 'Batsman',
     'base_price': 7500000, 'specialization': 'Aggressive Opening', 'is_overseas': False},
    {'name': 'Liam Livingstone', 'nationality': 'England', 'category': 'All-Rounder',
     'base_price': 12500000, 'specialization': 'Power Hitting & Spin', 'is_overseas': True},
]
