from auction import db
import json
import time
import uuid


def generate_room_id():
    """Generate an opaque, stable room identifier."""
    return uuid.uuid4().hex


class AuctionState(db.Model):
    __tablename__ = 'auction_state'
    room_id = db.Column(db.String(64), primary_key=True, default=generate_room_id)
    time_remaining = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=False)
    is_paused = db.Column(db.Boolean, nullable=False, default=False)
    player_queue = db.Column(db.Text, nullable=True)  # JSON-encoded list of lots
    total_players = db.Column(db.Integer, nullable=False, default=0)
    current_lot_index = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.Float, nullable=False, default=time.time)

    @property
    def queue(self):
        """Decoded queue, or None when absent or not valid JSON."""
        if self.player_queue is None:
            return None
        try:
            return json.loads(self.player_queue)
        except Exception:
            return None

    def to_dict(self, include_queue=True):
        payload = {
            'room_id': self.room_id,
            'time_remaining': self.time_remaining,
            'is_active': self.is_active,
            'is_paused': self.is_paused,
            'total_players': self.total_players,
            'current_lot_index': self.current_lot_index,
            'updated_at': self.updated_at,
        }
        if include_queue:
            payload['player_queue'] = self.queue
        return payload


class Lot(db.Model):
    __tablename__ = 'lot'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    nationality = db.Column(db.String(64), nullable=True)
    category = db.Column(db.String(32), nullable=True)
    base_price = db.Column(db.BigInteger, nullable=False)  # minor units
    specialization = db.Column(db.String(128), nullable=True)
    is_overseas = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'nationality': self.nationality,
            'category': self.category,
            'base_price': self.base_price,
            'specialization': self.specialization,
            'is_overseas': self.is_overseas,
        }


class Participant(db.Model):
    __tablename__ = 'participant'
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.String(64), db.ForeignKey('auction_state.room_id'), nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False)
    user_name = db.Column(db.String(64), nullable=False)
    team_id = db.Column(db.String(16), nullable=True)
    is_auctioneer = db.Column(db.Boolean, nullable=False, default=False)
    joined_at = db.Column(db.Float, nullable=False, default=time.time)

    def to_dict(self):
        return {
            'id': self.id,
            'room_id': self.room_id,
            'user_id': self.user_id,
            'user_name': self.user_name,
            'team_id': self.team_id,
            'is_auctioneer': self.is_auctioneer,
            'joined_at': self.joined_at,
        }
