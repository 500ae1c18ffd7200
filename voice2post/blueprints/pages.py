from flask import Blueprint, redirect, render_template

pages_bp = Blueprint('pages', __name__)

PAGES = {
    'login': 'Sign in',
    'plan': 'Plans',
    'pricing': 'Pricing',
    'about': 'About Voice2Post',
    'record': 'Record audio',
    'generate': 'Generate a post',
    'history': 'History',
    'upgrade': 'Upgrade to Plus',
}


@pages_bp.route('/')
def index():
    # The session gate normally redirects before this runs.
    return redirect('/plan')


@pages_bp.route('/<any(login, plan, pricing, about, record, generate, history, upgrade):page>')
def page(page):
    return render_template('page.html', page=page, title=PAGES[page])


@pages_bp.route('/auth/callback')
def auth_callback():
    return render_template('page.html', page='auth_callback', title='Signing you in')


@pages_bp.route('/auth/confirm')
def auth_confirm():
    return render_template('page.html', page='auth_confirm', title='Confirming your email')
