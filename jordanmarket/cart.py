"""
Cart Store
A pure reducer over the cart state, persisted in the signed session cookie.

State shape:
    {'seller_id': int or None,
     'items': [{'product_id', 'seller_id', 'name_en', 'name_ar', 'price', 'quantity'}]}

Prices are kept as strings so the state survives the JSON session serializer;
checkout re-reads prices from the database.
"""
import copy
from decimal import Decimal

from flask import session

from jordanmarket.errors import DIFFERENT_SELLER
from jordanmarket.i18n import to_money, money_str

ADD_ITEM = 'ADD_ITEM'
REMOVE_ITEM = 'REMOVE_ITEM'
UPDATE_QUANTITY = 'UPDATE_QUANTITY'
CLEAR = 'CLEAR'

SESSION_KEY = 'cart'


class CartError(Exception):
    """Raised by the reducer for actions the current state cannot accept"""

    def __init__(self, code):
        super().__init__(code)
        self.code = code


def empty_cart():
    return {'seller_id': None, 'items': []}


def _find(items, product_id):
    for item in items:
        if item['product_id'] == product_id:
            return item
    return None


def cart_reducer(state, action):
    """
    Return the next cart state for an action; the input state is not mutated

    Raises:
        CartError(DIFFERENT_SELLER): adding a product from a second seller
        ValueError: unknown action type
    """
    state = copy.deepcopy(state) if state else empty_cart()
    action_type = action.get('type')

    if action_type == ADD_ITEM:
        item = action['item']
        quantity = int(action.get('quantity', 1))
        if state['items'] and state['seller_id'] != item['seller_id']:
            raise CartError(DIFFERENT_SELLER)

        existing = _find(state['items'], item['product_id'])
        if existing:
            existing['quantity'] += quantity
        else:
            entry = dict(item)
            entry['price'] = money_str(item['price'])
            entry['quantity'] = quantity
            state['items'].append(entry)
        state['seller_id'] = item['seller_id']

    elif action_type == REMOVE_ITEM:
        state['items'] = [i for i in state['items'] if i['product_id'] != action['product_id']]

    elif action_type == UPDATE_QUANTITY:
        quantity = int(action['quantity'])
        if quantity <= 0:
            state['items'] = [i for i in state['items'] if i['product_id'] != action['product_id']]
        else:
            existing = _find(state['items'], action['product_id'])
            if existing:
                existing['quantity'] = quantity

    elif action_type == CLEAR:
        return empty_cart()

    else:
        raise ValueError(f"Unknown cart action: {action_type}")

    if not state['items']:
        state['seller_id'] = None
    return state


def cart_totals(state):
    items = (state or empty_cart())['items']
    subtotal = sum((to_money(i['price']) * i['quantity'] for i in items), Decimal('0.00'))
    return {
        'item_count': sum(i['quantity'] for i in items),
        'subtotal': to_money(subtotal),
    }


def load_cart():
    return session.get(SESSION_KEY) or empty_cart()


def save_cart(state):
    session[SESSION_KEY] = state
    session.permanent = True
    return state


def dispatch(action):
    """Apply an action to the session cart and persist the result"""
    return save_cart(cart_reducer(load_cart(), action))
