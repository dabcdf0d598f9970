import logging
import os
from datetime import datetime

import numpy as np
import matplotlib
import matplotlib.pyplot as plt

from kick import KickNoTendon, KickWithTendon, Simulation
from muscle import Muscle
from params import KickParams

SLACK_RATIOS = (1, 3, 10)


def scenario_label(ratio):
    return f'{ratio:g} * lopt'


def run_scenarios(params=None, slack_ratios=SLACK_RATIOS, t_max=0.5, rtol=1e-6, atol=1e-9):
    """
    Run the kick with no tendon and with one tendon per slack ratio.

    Every scenario gets its own parameter snapshot, so forces recovered
    from a run always use that run's slack length.
    """
    if params is None:
        params = KickParams()

    runs = {scenario_label(0): KickNoTendon(params)}
    for ratio in slack_ratios:
        runs[scenario_label(ratio)] = KickWithTendon(params.with_slack_ratio(ratio))

    results = {}
    for label, model in runs.items():
        sim = Simulation(model, t_max=t_max, rtol=rtol, atol=atol)
        results[label] = sim.run()
        if not results[label]['terminated_by_event']:
            print(f"Warning: {label} did not reach the ground within {t_max}s")
    return results


def summarize(results):
    """
    Contact time and angular velocity at the end of each run.
    """
    summary = {}
    for label, res in results.items():
        summary[label] = {
            'contact_time': res['time'][-1] if res['terminated_by_event'] else None,
            'final_phidot': res['phidot'][-1],
            'peak_force': np.max(res['muscle_force']),
        }
    return summary


def print_summary(summary):
    for label, row in summary.items():
        if row['contact_time'] is None:
            contact = 'no contact'
        else:
            contact = f"contact at {row['contact_time'] * 1000:.1f} ms"
        print(f"{label:>10}: {contact}, phidot = {row['final_phidot']:.2f} rad/s, "
              f"peak force = {row['peak_force']:.0f} N")


def fastest_scenario(summary):
    """Label of the scenario with the largest angular velocity at contact."""
    reached = {k: v for k, v in summary.items() if v['contact_time'] is not None}
    return max(reached, key=lambda k: reached[k]['final_phidot'])


def create_results_folder():
    script_dir = os.path.dirname(os.path.abspath(__file__))

    results_dir = os.path.join(script_dir, 'results')

    # Create timestamped subfolder
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    run_dir = os.path.join(results_dir, timestamp)

    if not os.path.exists(run_dir):
        os.makedirs(run_dir)

    print(f"Results will be saved to: {run_dir}")
    return run_dir


def plot_results(results, save_dir=None):
    """
    Plot angle, angular velocity, muscle force and fiber length of every
    scenario against time.
    """
    fig, axes = plt.subplots(2, 2, figsize=(14, 10))
    fig.suptitle('Maximal Knee Extension: Effect of Tendon Slack Length', fontsize=14, fontweight='bold')

    for label, res in results.items():
        time = res['time']
        axes[0, 0].plot(time, res['phi'], linewidth=1.5, label=label)
        axes[0, 1].plot(time, res['phidot'], linewidth=1.5, label=label)
        axes[1, 0].plot(time, res['muscle_force'], linewidth=1.5, label=label)
        axes[1, 1].plot(time, res['fiber_length'], linewidth=1.5, label=label)

    # Angle
    axes[0, 0].set_xlabel('Time (s)')
    axes[0, 0].set_ylabel('Phi (rad)')
    axes[0, 0].set_title('Phi vs. time')
    axes[0, 0].grid(True, alpha=0.3)

    # Angular velocity
    axes[0, 1].set_xlabel('Time (s)')
    axes[0, 1].set_ylabel('Phidot (rad/s)')
    axes[0, 1].set_title('Phidot vs. time')
    axes[0, 1].grid(True, alpha=0.3)

    # Muscle force
    axes[1, 0].set_xlabel('Time (s)')
    axes[1, 0].set_ylabel('Force (N)')
    axes[1, 0].set_title('Force vs. time')
    axes[1, 0].legend()
    axes[1, 0].grid(True, alpha=0.3)

    # Fiber length
    axes[1, 1].set_xlabel('Time (s)')
    axes[1, 1].set_ylabel('Length (m)')
    axes[1, 1].set_title('Muscle fiber length vs. time')
    axes[1, 1].grid(True, alpha=0.3)

    plt.tight_layout()

    if save_dir:
        save_path = os.path.join(save_dir, 'kick_results.png')
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        print(f"Saved kick results plot to {save_path}")
        plt.close(fig)
    else:
        plt.show()
        plt.close(fig)


def main():
    """
    Simulate a maximal kick for several tendon slack lengths and compare.
    """
    logging.basicConfig(level=logging.INFO, format='%(name)s: %(message)s')

    # Simulation parameters
    t_max = 0.5        # horizon (s); the kick normally ends at ground contact well before
    rtol = 1e-6
    atol = 1e-9
    show_plots = False  # If True, show figures instead of saving them

    if show_plots:
        run_dir = None
    else:
        matplotlib.use('Agg')  # non-interactive backend for headless saving
        run_dir = create_results_folder()
    params = KickParams()

    print(f"Running kick simulations for slack ratios {SLACK_RATIOS} and no tendon...")
    results = run_scenarios(params, SLACK_RATIOS, t_max=t_max, rtol=rtol, atol=atol)
    print("Simulation complete!")
    print()

    summary = summarize(results)
    print_summary(summary)
    print(f"Fastest at contact: {fastest_scenario(summary)}")
    print()

    plot_results(results, save_dir=run_dir)
    Muscle(params).plot_characteristics(save_dir=run_dir)


if __name__ == "__main__":
    main()
